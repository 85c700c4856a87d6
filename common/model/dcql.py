# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Digital Credentials Query Language
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#name-digital-credentials-query-l
"""

from pydantic import BaseModel


class ClaimsQuery(BaseModel):
    id: str
    path: list[str]
    """
    Path pointer into the credential, one entry per nesting level (e.g. ["address", "locality"])
    """


class CredentialQueryMeta(BaseModel):
    vct_values: list[str]


class CredentialQuery(BaseModel):
    id: str
    format: str
    """
    Credential format identifier, e.g. dc+sd-jwt
    """
    meta: CredentialQueryMeta | None = None
    claims: list[ClaimsQuery]


class DcqlQuery(BaseModel):
    credentials: list[CredentialQuery]
