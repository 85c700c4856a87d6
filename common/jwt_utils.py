# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import binascii
import json

from jwcrypto import jwk, jwt
from jwcrypto.common import JWException

from common import parsing as prs


class MalformedJWTError(ValueError):
    """The token is not a compact serialized JWT."""


def split_jwt(token: str) -> list[str]:
    """
    Splits a JWT into its head at index 0, body at index 1, signature at index 2.
    """
    return token.split(".")


def encode_unsigned_jwt(payload: dict, header: dict | None = None) -> str:
    """
    Compact serialization of an unsecured JWT (alg none) with an empty signature segment.
    https://www.rfc-editor.org/rfc/rfc7519#section-6
    """
    header = {"alg": "none", "typ": "JWT", **(header or {})}
    return f"{prs.object_to_url_safe(header)}.{prs.object_to_url_safe(payload)}."


def decode_unverified(token: str) -> tuple[dict, dict]:
    """
    Returns (header, payload) of a compact JWT without looking at the signature.

    Only to be used where the caller explicitly opted out of signature verification.
    """
    parts = split_jwt(token)
    if len(parts) != 3:
        raise MalformedJWTError("Invalid JWT format")
    if not parts[1]:
        raise MalformedJWTError("Invalid JWT format: missing payload")
    try:
        header = prs.object_from_url_safe(parts[0])
        payload = prs.object_from_url_safe(parts[1])
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedJWTError(f"Invalid JWT encoding: {e}") from e
    if not isinstance(payload, dict) or not isinstance(header, dict):
        raise MalformedJWTError("Invalid JWT format: header and payload must be JSON objects")
    return header, payload


def verify_jwt(token: str, key: jwk.JWK, algs: list[str] | None = None) -> dict:
    """
    Checks the signature (and exp / nbf when present) of the JWT and returns its claims.

    May throw `jwt.JWException` exceptions if not valid, `MalformedJWTError` if the
    token can not be parsed at all.
    """
    try:
        verified = jwt.JWT(jwt=token, key=key, algs=algs or ["ES256"], expected_type="JWS")
    except (ValueError, TypeError) as e:
        raise MalformedJWTError(f"Invalid JWT format: {e}") from e
    return json.loads(verified.claims)


def load_public_jwk(jwk_json: str | dict) -> jwk.JWK:
    """Loads a public JWK given as JSON string or dictionary."""
    if isinstance(jwk_json, str):
        return jwk.JWK.from_json(jwk_json)
    return jwk.JWK(**jwk_json)


__all__ = [
    "JWException",
    "MalformedJWTError",
    "split_jwt",
    "encode_unsigned_jwt",
    "decode_unverified",
    "verify_jwt",
    "load_public_jwk",
]
