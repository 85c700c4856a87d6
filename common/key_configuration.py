# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Collection for loading and returning cryptographic keys in the required formats.

The verifier signs authorization requests when one of the signed request
formats is configured. Without a key the unsigned formats keep working.
"""

import logging
import os
from functools import cache
from typing import Annotated, Optional

from fastapi import Depends
from jwcrypto import jwk, jws, common as jw_common

import common.model.ietf as ietf

_logger = logging.getLogger(__name__)


def _load_key_file(key_file: str) -> str | None:
    if not os.path.exists(key_file):
        return None
    with open(key_file) as f:
        return f.read()


def _load_key(env_var: str, file: str) -> str | None:
    key = os.getenv(env_var)
    if not key:
        key = _load_key_file(file)
    return key


class KeyConfiguration:
    """
    Holds the private signing key and the public key announced to wallets
    """

    @staticmethod
    def load(key_folder: str = "cert") -> Optional["KeyConfiguration"]:
        private_key = _load_key(env_var="SIGNING_KEY_PRIVATE", file=f"{key_folder}/ec_private.pem")
        if not private_key:
            _logger.info("No signing key configured, signed authorization requests are unavailable.")
            return None
        public_jwk = os.getenv("SIGNING_KEY_PUBLIC_JWK")
        signing_algorithm = os.getenv("SIGNING_ALGORITHM", "ES256")
        return KeyConfiguration(private_key, signing_algorithm, public_jwk)

    def __init__(self, private_key: str, signing_algorithm: str = "ES256", public_jwk: str | None = None):
        """
        private_key is the pem, utf-8 encoded.
        If no public jwk is given it is derived from the private key.
        """
        self.signing_algorithm: str = signing_algorithm
        self.private_jwk = jwk.JWK.from_pem(private_key.encode())
        if public_jwk:
            self.public_jwk = jwk.JWK.from_json(public_jwk)
        else:
            self.public_jwk = jwk.JWK(**self.private_jwk.export_public(as_dict=True))
        self._kid = self.public_jwk.get("kid") or self.public_jwk.thumbprint()

    @property
    def kid(self) -> str:
        return self._kid

    def encode_jwt(self, payload: dict, header: dict | None = None) -> str:
        """
        Signs the payload as compact JWS.
        typ: oauth-authz-req+jwt for request objects
        https://www.rfc-editor.org/rfc/rfc9101.html#section-10.8
        """
        header = dict(header or {})
        header.setdefault('alg', self.signing_algorithm)
        header.setdefault('typ', 'oauth-authz-req+jwt')
        header.setdefault('kid', self.kid)

        encoded_claims = jw_common.json_encode(payload)
        encoded_header = jw_common.json_encode(header)
        signer = jws.JWS(encoded_claims)
        signer.add_signature(key=self.private_jwk, protected=encoded_header)
        return signer.serialize(compact=True)

    @property
    def jwks(self) -> dict:
        """
        JSON Web Key Set with public signing key
        """
        public = self.public_jwk.export_public(as_dict=True)
        public.setdefault("kid", self.kid)
        public.setdefault("use", "sig")
        public.setdefault("alg", self.signing_algorithm)
        return {"keys": [public]}

    def public_key_as_dto(self) -> ietf.JSONWebKey:
        """Returns the public key as pydantic data transfer object"""
        return ietf.JSONWebKey.model_validate(self.jwks["keys"][0])


@cache
def get_key_configuration() -> KeyConfiguration | None:
    return KeyConfiguration.load()


inject = Annotated[KeyConfiguration | None, Depends(get_key_configuration)]
