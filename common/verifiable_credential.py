# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
JWT secured verifiable credentials and presentations.

Based on https://www.w3.org/TR/vc-data-model-2.0/ as far as it is needed to
present age attestations.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict


class CredentialSubject(BaseModel):
    """
    The actual data of the credential
    https://www.w3.org/TR/vc-data-model-2.0/#credential-subject
    """

    model_config = ConfigDict(extra='allow')

    id: Optional[str] = None
    """
    Each CredentialSubject may contain an id. if it contains it, the id should be unique
    """

    def as_claims(self) -> dict[str, Any]:
        """The claims as presented, an absent id is not added."""
        claims = dict(self.model_extra or {})
        if self.id is not None:
            claims["id"] = self.id
        return claims


class W3CData(BaseModel):
    """
    https://www.w3.org/TR/vc-data-model-2.0
    """

    model_config = ConfigDict(extra='allow')

    id: Optional[str] = None

    type: list[str] | str
    """
    Verifiable credentials and verifiable presentations MUST have a type property.
    https://www.w3.org/TR/vc-data-model-2.0/#types
    """


class VerifiableCredential(W3CData):
    """
    Only the credentialSubject is evaluated, the trusted issuer is the
    issuer of the enclosing presentation JWT.
    """

    type: list[str] | str = ["VerifiableCredential"]
    issuer: str | dict | None = None
    """
    MUST be either a URL or an object containing an id property.
    """

    credentialSubject: CredentialSubject


class VerifiablePresentation(W3CData):
    """
    https://www.w3.org/TR/vc-data-model-2.0/#presentations-0
    """

    verifiableCredential: list[Union[str, dict[str, Any]]]
    """
    List of Credentials, either as jwts or objects.
    Parsed one by one into `VerifiableCredential` when evaluated.
    """
    type: str | list[str] = ["VerifiablePresentation"]


class JsonWebTokenBody(BaseModel):
    """
    https://datatracker.ietf.org/doc/html/rfc7519#section-4
    NumericDate: number of seconds from 1970-01-01T00:00:00Z UTC
    """

    model_config = ConfigDict(extra='allow')
    iss: Optional[str] = None
    """
    Issuer: identifies the principal that issued the JWT. Case Sensitive. StringOrURI
    """
    sub: Optional[str] = None
    aud: Union[str, list[str], None] = None
    exp: Optional[int] = None
    """
    Expiration Time: identifies the time on or after the jwt must not be accepted for processing NumericDate
    """
    nbf: Optional[int] = None
    iat: Optional[int] = None
    nonce: Optional[str] = None


class JsonWebTokenBodyVPData(JsonWebTokenBody):
    """
    JWT secured presentation, the presentation itself lives in the `vp` claim.
    https://www.w3.org/TR/vc-jwt/#jwt-encoding
    """

    vp: VerifiablePresentation

    def as_claims(self) -> dict:
        return self.model_dump(exclude_none=True)
