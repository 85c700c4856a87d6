# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Test data: mock wallet presentations, keys and a controllable clock.
"""

import datetime
import time

from jwcrypto import jwk, jwt

from common import jwt_utils, verifiable_credential as vc
from common.key_configuration import KeyConfiguration

from age_verifier.config import VerifierConfig

TRUSTED_ISSUER = "did:example:eudi-issuer"
HOLDER = "did:example:holder123"
VERIFIER_URL = "https://verifier.example"
START = datetime.datetime(2024, 6, 14, 12, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Clock injected into stores and session managers, advanced manually."""

    def __init__(self, now: datetime.datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += datetime.timedelta(seconds=seconds)


def generate_key() -> jwk.JWK:
    return jwk.JWK.generate(kty='EC', crv='P-256')


def key_configuration() -> KeyConfiguration:
    return KeyConfiguration(generate_key().export_to_pem(private_key=True, password=None).decode())


def public_jwk_json(key: jwk.JWK) -> str:
    return key.export_public()


def presentation_claims(claims: dict, issuer: str | None = TRUSTED_ISSUER, holder: str = HOLDER, lifetime: int = 7200) -> dict:
    """Payload of a JWT presentation with a single age credential, as a wallet would send it."""
    now = int(time.time())
    credential = vc.VerifiableCredential(
        type=["VerifiableCredential", "AgeCredential"],
        issuer=issuer or "did:example:unknown",
        credentialSubject=vc.CredentialSubject(id=holder, **claims),
    )
    body = vc.JsonWebTokenBodyVPData(
        iss=issuer,
        sub=holder,
        iat=now,
        exp=now + lifetime,
        vp=vc.VerifiablePresentation(verifiableCredential=[credential.model_dump(exclude_none=True)]),
    )
    return body.as_claims()


def sign(payload: dict, key: jwk.JWK) -> str:
    token = jwt.JWT(header={"alg": "ES256", "typ": "JWT"}, claims=payload)
    token.make_signed_token(key)
    return token.serialize()


def signed_presentation(claims: dict, key: jwk.JWK, issuer: str | None = TRUSTED_ISSUER) -> str:
    return sign(presentation_claims(claims, issuer=issuer), key)


def unsigned_presentation(claims: dict, issuer: str | None = TRUSTED_ISSUER) -> str:
    return jwt_utils.encode_unsigned_jwt(presentation_claims(claims, issuer=issuer))


def verifier_config(**overrides) -> VerifierConfig:
    """Config independent of the environment of the test run."""
    config = VerifierConfig()
    config.verifier_url = VERIFIER_URL
    config.request_format = "unsigned_jwt"
    config.claims_query = "dcql"
    config.presentation_definition_style = "age_over"
    config.trusted_issuers = [TRUSTED_ISSUER]
    config.issuer_public_jwk = None
    config.verify_skip_signature = True
    config.pairwise_secret = None
    config.session_store = "memory"
    for name, value in overrides.items():
        setattr(config, name, value)
    return config
