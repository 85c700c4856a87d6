# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import os
from typing import Annotated

from fastapi import Depends

import common.config as conf
from common.parsing import interpret_as_bool, split_csv

DEFAULT_VCT_VALUES = "https://pidissuer.demo.connector.lissi.io/pid"
DEFAULT_TRUSTED_ISSUERS = "did:example:eudi-issuer"


class VerifierConfig(conf.Config):
    def __init__(self):
        super().__init__()
        self.app_name = os.getenv("APP_NAME", "Age Verifier")
        self.verifier_url = os.getenv("EXTERNAL_URL", "https://localhost:8001").rstrip("/")
        self.session_ttl: int = 600
        """
        Sessions live 10 minutes (60*10 = 600 secs) from their last update.
        Not configurable, only exposed to have a single source of truth.
        """
        self.authorization_request_ttl: int = 3600
        """
        Lifetime of a JWT authorization request (exp - iat)
        """

        self.request_format = os.getenv("REQUEST_FORMAT", "unsigned_jwt")
        """
        One of plain, unsigned_jwt, signed_jwt_redirect_uri, signed_jwt_rfc9101
        """
        self.claims_query = os.getenv("CLAIMS_QUERY", "dcql")
        """
        Claims request style used by the JWT request formats, dcql or presentation_definition.
        The plain format always sends a presentation definition.
        """
        self.presentation_definition_style = os.getenv("PRESENTATION_DEFINITION_STYLE", "age_over")
        """
        age_over: mso_mdoc age_over_<minAge> predicate, minimum: numeric age claim with a minimum filter
        """
        self.dcql_vct_values: list[str] = split_csv(os.getenv("DCQL_VCT_VALUES", DEFAULT_VCT_VALUES))
        self.client_name = os.getenv("CLIENT_NAME", "EUDI Age Verifier")

        self.trusted_issuers: list[str] = split_csv(os.getenv("TRUSTED_ISSUERS", DEFAULT_TRUSTED_ISSUERS))
        """
        Static allow-list of credential issuers (iss) accepted by the verifier.
        """
        self.issuer_public_jwk = os.getenv("ISSUER_PUBLIC_JWK")
        """
        JWK (JSON) used to verify the signature of submitted presentations.
        """
        self.verify_skip_signature: bool = interpret_as_bool(os.getenv("VERIFY_SKIP_SIGNATURE", "False"))
        """
        Accept presentations without checking their signature. Only ever for test deployments.
        """

        self.session_store = os.getenv("SESSION_STORE", "memory")
        self.redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.store_timeout: float = float(os.getenv("STORE_TIMEOUT", 2.0))
        """
        Upper bound in seconds for a single store call
        """
        self.store_sweep_interval: float = float(os.getenv("STORE_SWEEP_INTERVAL", 60))

        self.pairwise_secret = os.getenv("PAIRWISE_SECRET")

    @property
    def client_id(self) -> str:
        return self.verifier_url

    @property
    def response_uri(self) -> str:
        return f"{self.verifier_url}/oid4vp/callback"

    def has_minimum_config(self) -> bool:
        has_verification_mode = bool(self.issuer_public_jwk) or self.verify_skip_signature
        return all([self.verifier_url, self.trusted_issuers, has_verification_mode])


inject = Annotated[VerifierConfig, Depends(VerifierConfig)]
