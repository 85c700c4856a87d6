# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Verification of presentations submitted by wallets.

Two stages: the presentation JWT is decoded (and its signature checked), the
issuer matched against the trusted issuers and the claims of the first
credential extracted. The claims are then evaluated against the age threshold.
"""

import datetime
import logging
from typing import Any, NamedTuple

from jwcrypto import jwk
from pydantic import ValidationError

from common import jwt_utils, verifiable_credential as vc

import age_verifier.config as conf
import age_verifier.models as models
from age_verifier.exception import VerifierConfigurationError
from age_verifier.logging import VerifierOperationsLogEntry

_logger = logging.getLogger(__name__)

DEFAULT_TRUSTED_ISSUERS = frozenset({"did:example:eudi-issuer"})
"""
Mock issuer for development, production deployments configure TRUSTED_ISSUERS.
"""


class PresentationFormatError(ValueError):
    """The presentation lacks a part required to extract the claims."""


class VerificationOptions(NamedTuple):
    trusted_issuers: frozenset[str] = DEFAULT_TRUSTED_ISSUERS
    public_key: jwk.JWK | None = None
    skip_signature_verification: bool = False
    """
    Decode without checking the signature. TESTING ONLY, never the default.
    """

    @staticmethod
    def from_config(config: conf.VerifierConfig) -> "VerificationOptions":
        public_key = None
        if config.issuer_public_jwk:
            try:
                public_key = jwt_utils.load_public_jwk(config.issuer_public_jwk)
            except (ValueError, TypeError, jwt_utils.JWException) as e:
                raise VerifierConfigurationError("ISSUER_PUBLIC_JWK is not a valid JWK") from e
        return VerificationOptions(
            trusted_issuers=frozenset(config.trusted_issuers) or DEFAULT_TRUSTED_ISSUERS,
            public_key=public_key,
            skip_signature_verification=config.verify_skip_signature,
        )


def _decode(presentation: str, options: VerificationOptions) -> dict[str, Any]:
    if options.skip_signature_verification:
        _, payload = jwt_utils.decode_unverified(presentation)
        return payload
    if options.public_key is not None:
        return jwt_utils.verify_jwt(presentation, options.public_key)
    _logger.error("Neither an issuer key nor skipping of the signature verification is configured.")
    raise VerifierConfigurationError("Either publicKey or skipSignatureVerification must be provided")


def _locations(error: ValidationError) -> list[tuple]:
    return [tuple(details["loc"]) for details in error.errors()]


def extract_vp(payload: dict[str, Any]) -> vc.VerifiablePresentation:
    try:
        body = vc.JsonWebTokenBodyVPData.model_validate(payload)
    except ValidationError as e:
        locations = _locations(e)
        if any(location[:2] == ("vp", "verifiableCredential") for location in locations):
            raise PresentationFormatError("VP does not contain verifiableCredential array") from e
        if any(location[:1] == ("vp",) for location in locations):
            raise PresentationFormatError("JWT payload does not contain vp claim") from e
        raise PresentationFormatError(f"JWT payload has invalid claims: {', '.join(str(location[0]) for location in locations if location)}") from e
    return body.vp


def extract_vc(vp: vc.VerifiablePresentation) -> vc.VerifiableCredential:
    """
    Returns the first credential of the presentation. Further credentials are ignored.
    JWT encoded credentials are unpacked, they are covered by the signature of the presentation.
    """
    if not vp.verifiableCredential:
        raise PresentationFormatError("VP contains no credentials")
    credential = vp.verifiableCredential[0]
    if isinstance(credential, str):
        try:
            _, payload = jwt_utils.decode_unverified(credential)
        except jwt_utils.MalformedJWTError as e:
            raise PresentationFormatError(f"VC could not be decoded: {e}") from e
        credential = payload.get("vc", payload)
    try:
        return vc.VerifiableCredential.model_validate(credential)
    except ValidationError as e:
        if any(location[:1] == ("credentialSubject",) for location in _locations(e)):
            raise PresentationFormatError("VC does not contain credentialSubject") from e
        raise PresentationFormatError("VC is malformed") from e


def extract_claims(credential: vc.VerifiableCredential) -> dict[str, Any]:
    return credential.credentialSubject.as_claims()


def verify_presentation(presentation: str, options: VerificationOptions = VerificationOptions()) -> models.VerificationResult:
    """
    Decodes the presentation and returns the claims of its first credential.

    Failures of the presentation are returned as invalid result.

    Raises:
        VerifierConfigurationError: neither a public key nor skipping the signature check is configured
    """
    try:
        payload = _decode(presentation, options)
    except (jwt_utils.MalformedJWTError, jwt_utils.JWException) as e:
        return models.VerificationResult(valid=False, error=str(e) or repr(e))

    issuer = payload.get("iss")
    if not isinstance(issuer, str) or issuer not in options.trusted_issuers:
        return models.VerificationResult(valid=False, error=f"Untrusted issuer: {issuer}")

    try:
        claims = extract_claims(extract_vc(extract_vp(payload)))
    except PresentationFormatError as e:
        return models.VerificationResult(valid=False, error=str(e))
    return models.VerificationResult(valid=True, verified_claims=claims)


def _parse_birthdate(value: str) -> datetime.date | None:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.datetime.fromisoformat(value).date()
    except ValueError:
        return None


def calculate_age(birthdate: datetime.date, today: datetime.date) -> int:
    """Full years, one less if this year's birthday is still ahead."""
    age = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        age -= 1
    return age


def check_age(claims: dict[str, Any], min_age: int, today: datetime.date | None = None) -> bool:
    """
    Evaluates the claims in fixed precedence, the most privacy preserving claim first:
    age_over_18 / age_over_21 predicates, birthdate, numeric age.
    """
    if min_age == 18 and claims.get("age_over_18") is True:
        return True
    if min_age == 21 and claims.get("age_over_21") is True:
        return True

    birthdate = claims.get("birthdate")
    if isinstance(birthdate, str) and birthdate:
        parsed = _parse_birthdate(birthdate)
        if parsed is None:
            return False
        if today is None:
            today = datetime.datetime.now(datetime.timezone.utc).date()
        return calculate_age(parsed, today) >= min_age

    age = claims.get("age")
    if isinstance(age, (int, float)) and not isinstance(age, bool):
        return age >= min_age

    return False


def verify_age(
    presentation: str,
    min_age: int,
    options: VerificationOptions = VerificationOptions(),
    today: datetime.date | None = None,
) -> tuple[models.AgeVerificationResult, models.VerificationResult]:
    """
    Full pipeline, returns the age decision together with the decoded presentation.
    The detailed failure reason only ends up in the assertion and the server log.
    """
    result = verify_presentation(presentation, options)
    assertion = models.AgeAssertion(age_range=f">={min_age}")
    if not result.valid:
        assertion.error = result.error
        _logger.info(
            VerifierOperationsLogEntry(
                message=f"Presentation rejected: {result.error}",
                status=VerifierOperationsLogEntry.Status.error,
                operation=VerifierOperationsLogEntry.Operation.verification,
                step=VerifierOperationsLogEntry.Step.evaluation,
                error_code="invalid_presentation",
                # do not include management_id to prevent user tracking
            )
        )
        return models.AgeVerificationResult(is_old_enough=False, assertion=assertion), result

    is_old_enough = check_age(result.verified_claims or {}, min_age, today)
    _logger.info(
        VerifierOperationsLogEntry(
            message="Age evaluated.",
            status=VerifierOperationsLogEntry.Status.success if is_old_enough else VerifierOperationsLogEntry.Status.error,
            operation=VerifierOperationsLogEntry.Operation.verification,
            step=VerifierOperationsLogEntry.Step.evaluation,
            error_code=None if is_old_enough else "age_below_threshold",
        )
    )
    return models.AgeVerificationResult(is_old_enough=is_old_enough, assertion=assertion), result

