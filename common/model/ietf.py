# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Collection of Pydantic models for IETF Objects
"""
from typing import Literal, Union

from jwcrypto import jwk
from pydantic import BaseModel, ConfigDict


class JSONWebKey(BaseModel):
    """
    represents a cryptographic key
    https://datatracker.ietf.org/doc/html/rfc7517
    """

    model_config = ConfigDict(extra='allow')

    kty: str
    """
    key type
    https://datatracker.ietf.org/doc/html/rfc7517#section-4.1
    """

    use: str | None = None
    """
    Intended Use of the public key
    https://datatracker.ietf.org/doc/html/rfc7517#section-4.2
    """

    alg: str | None = None
    """
    Alogirhtm inteded for use with the key
    https://datatracker.ietf.org/doc/html/rfc7517#section-4.4
    """

    kid: str | None = None
    """
    Key ID, used to match sepcific keys
    https://datatracker.ietf.org/doc/html/rfc7517#section-4.5
    """

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JSONWebKey):
            return self.as_crypto_jwk().thumbprint() == other.as_crypto_jwk().thumbprint()
        return False

    def as_crypto_jwk(self) -> jwk.JWK:
        """Returns the crypto library object"""
        return jwk.JWK(**self.model_dump(exclude_none=True))

    def is_private(self) -> bool:
        return self.as_crypto_jwk().has_private


class JSONWebKeyEllipticCurve(JSONWebKey):
    """
    https://www.rfc-editor.org/rfc/rfc7518#section-6.2
    """

    kty: Literal['EC']

    crv: str
    """
    Curve to use with x & y coordinates, P-256 for ES256
    """

    x: str
    y: str


class JSONWebKeySet(BaseModel):
    keys: list[Union[JSONWebKeyEllipticCurve, JSONWebKey]]

    def as_crypto_jwks(self) -> jwk.JWKSet:
        return jwk.JWKSet.from_json(self.model_dump_json(exclude_none=True))
