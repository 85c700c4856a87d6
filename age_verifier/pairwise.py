# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Pairwise pseudonymous identifiers. The same holder gets a different, stable
identifier at every relying party.
"""

import hashlib
import hmac


def create_pairwise_id(link_secret: str | bytes, rp_identifier: str) -> str:
    """
    Derives the identifier deterministically as hex HMAC-SHA256(link_secret, rp_identifier).
    String secrets are used utf-8 encoded.
    """
    if isinstance(link_secret, str):
        link_secret = link_secret.encode("utf-8")
    return hmac.new(link_secret, rp_identifier.encode("utf-8"), hashlib.sha256).hexdigest()


def pairwise_subject(link_secret: str | bytes, subject_id: str, client_id: str) -> str:
    """Identifier of subject_id as seen by the relying party client_id."""
    return create_pairwise_id(link_secret, f"{client_id}|{subject_id}")
