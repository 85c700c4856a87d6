# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Builds the OpenID4VP authorization request for a session.
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html#name-authorization-request

All variants share the same protocol fields, they only differ in the client id
scheme and the envelope (JSON document, unsecured JWT or signed request object).
"""

import json
import logging
import secrets
import time
from enum import Enum
from typing import Any

from pydantic import BaseModel

from common import jwt_utils
from common.key_configuration import KeyConfiguration
from common.parsing import bytes_to_url_safe

import age_verifier.config as conf
import age_verifier.models as models
import age_verifier.presentation as presentation
from age_verifier.exception import VerifierConfigurationError

_logger = logging.getLogger(__name__)

SELF_ISSUED_AUDIENCE = "https://self-issued.me/v2"
NONCE_BYTES = 16


class RequestFormat(Enum):
    PLAIN = "plain"
    """
    Presentation Exchange request as JSON document, no client id scheme
    """

    UNSIGNED_JWT = "unsigned_jwt"
    """
    Unsecured JWT (alg none) with the redirect_uri client id scheme
    """

    SIGNED_JWT_REDIRECT_URI = "signed_jwt_redirect_uri"
    """
    ES256 signed request object with the redirect_uri client id scheme
    """

    SIGNED_JWT_RFC9101 = "signed_jwt_rfc9101"
    """
    ES256 signed request object as of RFC 9101 (iss, aud)
    https://www.rfc-editor.org/rfc/rfc9101.html
    """

    @property
    def is_jwt(self) -> bool:
        return self != RequestFormat.PLAIN

    @property
    def is_signed(self) -> bool:
        return self in (RequestFormat.SIGNED_JWT_REDIRECT_URI, RequestFormat.SIGNED_JWT_RFC9101)

    @property
    def media_type(self) -> str:
        if self == RequestFormat.PLAIN:
            return "application/json"
        if self == RequestFormat.UNSIGNED_JWT:
            return "application/jwt"
        return "application/oauth-authz-req+jwt"


class AuthorizationRequest(BaseModel):
    """
    Transient request derived from a session, never persisted.
    """

    request_format: RequestFormat
    payload: dict[str, Any]
    header: dict[str, Any] | None = None
    """
    JOSE header for the JWT formats
    """
    body: str
    """
    Serialized request as sent to the wallet
    """

    @property
    def media_type(self) -> str:
        return self.request_format.media_type


def _parse_format(value: str) -> RequestFormat:
    try:
        return RequestFormat(value)
    except ValueError as e:
        raise VerifierConfigurationError(f"Unknown request format {value}") from e


def _select_nonce(request_format: RequestFormat, session: models.VerificationSession, wallet_nonce: str | None) -> str:
    """wallet nonce, otherwise the session id for the unsigned formats and a fresh random value for signed ones"""
    if wallet_nonce:
        return wallet_nonce
    if request_format.is_signed:
        return bytes_to_url_safe(secrets.token_bytes(NONCE_BYTES))
    return session.session_id


def _claims_request(request_format: RequestFormat, session: models.VerificationSession, config: conf.VerifierConfig) -> dict[str, Any]:
    if request_format == RequestFormat.PLAIN or config.claims_query == "presentation_definition":
        try:
            definition = presentation.create_presentation_definition(session.min_age, config.presentation_definition_style)
        except ValueError as e:
            raise VerifierConfigurationError(str(e)) from e
        return {"presentation_definition": definition.model_dump(exclude_none=True)}
    if config.claims_query == "dcql":
        return {"dcql_query": presentation.create_dcql_query(config.dcql_vct_values).model_dump(exclude_none=True)}
    raise VerifierConfigurationError(f"Unknown claims query {config.claims_query}")


def _client_id(request_format: RequestFormat, config: conf.VerifierConfig) -> str:
    if request_format in (RequestFormat.UNSIGNED_JWT, RequestFormat.SIGNED_JWT_REDIRECT_URI):
        return f"redirect_uri:{config.response_uri}"
    return config.client_id


def assemble_fields(
    request_format: RequestFormat,
    session: models.VerificationSession,
    config: conf.VerifierConfig,
    wallet_nonce: str | None = None,
) -> dict[str, Any]:
    """Protocol fields common to every request format."""
    jwks_uri = f"{config.verifier_url}/oid4vp/jwks.json" if request_format == RequestFormat.SIGNED_JWT_RFC9101 else None
    fields: dict[str, Any] = {
        "response_type": "vp_token",
        "response_mode": "direct_post",
        "client_id": _client_id(request_format, config),
        "response_uri": config.response_uri,
        "nonce": _select_nonce(request_format, session, wallet_nonce),
        "state": session.session_id,
        **_claims_request(request_format, session, config),
        "client_metadata": presentation.create_client_metadata(
            client_name=config.client_name,
            client_uri=config.verifier_url,
            redirect_uri=config.response_uri,
            jwks_uri=jwks_uri,
        ).model_dump(exclude_none=True),
    }
    if wallet_nonce:
        fields["wallet_nonce"] = wallet_nonce
    return fields


def _envelope_claims(request_format: RequestFormat, config: conf.VerifierConfig, now: int) -> dict[str, Any]:
    """Per format additions to the shared fields."""
    if request_format == RequestFormat.PLAIN:
        return {}
    claims: dict[str, Any] = {"iat": now, "exp": now + config.authorization_request_ttl}
    if request_format == RequestFormat.UNSIGNED_JWT:
        claims.update(
            client_id_scheme="redirect_uri",
            redirect_uri=config.response_uri,
            iss=config.verifier_url,
            aud=SELF_ISSUED_AUDIENCE,
        )
    elif request_format == RequestFormat.SIGNED_JWT_REDIRECT_URI:
        claims.update(client_id_scheme="redirect_uri")
    elif request_format == RequestFormat.SIGNED_JWT_RFC9101:
        claims.update(iss=config.client_id, aud=SELF_ISSUED_AUDIENCE)
    return claims


def build_authorization_request(
    session: models.VerificationSession,
    config: conf.VerifierConfig,
    key_configuration: KeyConfiguration | None = None,
    wallet_nonce: str | None = None,
    request_format: RequestFormat | str | None = None,
    now: int | None = None,
) -> AuthorizationRequest:
    """
    Creates the authorization request in the configured (or given) format.

    Raises:
        VerifierConfigurationError: a signed format is requested without signing key
    """
    if request_format is None:
        request_format = config.request_format
    if not isinstance(request_format, RequestFormat):
        request_format = _parse_format(request_format)
    if request_format.is_signed and key_configuration is None:
        _logger.error(f"Request format {request_format.value} requires a signing key, but none is configured.")
        raise VerifierConfigurationError("Signing key required for signed authorization requests")

    payload = assemble_fields(request_format, session, config, wallet_nonce)
    payload.update(_envelope_claims(request_format, config, int(time.time()) if now is None else now))

    if request_format == RequestFormat.PLAIN:
        return AuthorizationRequest(request_format=request_format, payload=payload, body=json.dumps(payload))
    if request_format == RequestFormat.UNSIGNED_JWT:
        header = {"alg": "none", "typ": "JWT"}
        return AuthorizationRequest(request_format=request_format, payload=payload, header=header, body=jwt_utils.encode_unsigned_jwt(payload, header))

    header = {"alg": key_configuration.signing_algorithm, "typ": "oauth-authz-req+jwt", "kid": key_configuration.kid}
    return AuthorizationRequest(request_format=request_format, payload=payload, header=header, body=key_configuration.encode_jwt(payload, header))
