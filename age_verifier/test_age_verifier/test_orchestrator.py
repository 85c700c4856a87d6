# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Tests the verification round trip without HTTP layer
"""

import datetime
import logging
from unittest import mock

import pytest

from common import jwt_utils

import age_verifier.exception as err
import age_verifier.models as models
from age_verifier.cache.session_store import InMemorySessionStore
from age_verifier.orchestrator import VerificationOrchestrator
from age_verifier.pairwise import pairwise_subject
from age_verifier.session import SessionManager
import age_verifier.test_age_verifier.hard_coded as hc


@pytest.fixture
def clock() -> hc.FakeClock:
    return hc.FakeClock()


@pytest.fixture
def sessions(clock) -> SessionManager:
    return SessionManager(InMemorySessionStore(clock), clock)


@pytest.fixture
def orchestrator(sessions) -> VerificationOrchestrator:
    return VerificationOrchestrator(sessions, hc.verifier_config())


def test_end_to_end(orchestrator: VerificationOrchestrator, sessions: SessionManager):
    session = orchestrator.create(18)
    assert orchestrator.poll(session.session_id).status == models.SessionStatus.PENDING

    request = orchestrator.fetch_authorization_request(session.session_id)
    _, payload = jwt_utils.decode_unverified(request.body)
    assert payload["nonce"] == session.session_id
    assert payload["exp"] - payload["iat"] == 3600
    assert sessions.get_session(session.session_id).status == models.SessionStatus.PENDING, "Fetching does not change the status"

    response = orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), payload["state"])
    assert response.status == "success"
    assert response.redirect_uri == f"{hc.VERIFIER_URL}?session={session.session_id}"

    status = orchestrator.poll(session.session_id)
    assert status.status == models.SessionStatus.COMPLETED
    assert status.result.is_old_enough
    assert status.result.claims == {"id": hc.HOLDER, "age_over_18": True}
    assert status.error is None

    with pytest.raises(err.SessionNotFoundError):
        orchestrator.poll(session.session_id)


def test_too_young(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(21)
    with pytest.raises(err.AgeVerificationFailedError) as e:
        orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    assert e.value.status_code == 403
    status = orchestrator.poll(session.session_id)
    assert status.status == models.SessionStatus.FAILED
    assert status.error == "Age verification failed"
    assert status.result is None


def test_verifier_details_are_not_exposed(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(18)
    with pytest.raises(err.AgeVerificationFailedError) as e:
        orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}, issuer="did:example:evil"), session.session_id)
    assert "evil" not in str(e.value.additional_error_description)
    assert orchestrator.poll(session.session_id).error == "Age verification failed"


def test_second_post_is_rejected(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(18)
    presentation = hc.unsigned_presentation({"age_over_18": True})
    orchestrator.handle_callback(presentation, session.session_id)
    with pytest.raises(err.VerificationProcessClosed):
        orchestrator.handle_callback(presentation, session.session_id)
    assert orchestrator.poll(session.session_id).status == models.SessionStatus.COMPLETED


def test_post_while_scanned_is_rejected(orchestrator: VerificationOrchestrator, sessions: SessionManager):
    session = orchestrator.create(18)
    sessions.update_session(session.session_id, status=models.SessionStatus.SCANNED)
    with pytest.raises(err.VerificationProcessClosed):
        orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    assert sessions.get_session(session.session_id).status == models.SessionStatus.SCANNED


def test_callback_marks_scanned_before_verification(orchestrator: VerificationOrchestrator, sessions: SessionManager):
    session = orchestrator.create(18)
    observed = []

    def _verify_age(*args, **kwargs):
        observed.append(sessions.get_session(session.session_id).status)
        age = models.AgeVerificationResult(is_old_enough=True, assertion=models.AgeAssertion(age_range=">=18"))
        return age, models.VerificationResult(valid=True, verified_claims={"age": 30})

    with mock.patch("age_verifier.verification.verify_age", side_effect=_verify_age):
        orchestrator.handle_callback("token", session.session_id)
    assert observed == [models.SessionStatus.SCANNED]


@pytest.mark.parametrize(
    "vp_token, state, parameter",
    [
        (None, "abc", "vp_token"),
        ("", "abc", "vp_token"),
        ("token", None, "state"),
    ],
)
def test_callback_missing_parameters(orchestrator: VerificationOrchestrator, vp_token, state, parameter):
    with pytest.raises(err.MissingParameterError) as e:
        orchestrator.handle_callback(vp_token, state)
    assert e.value.parameter == parameter
    assert e.value.status_code == 400


def test_callback_unknown_session(orchestrator: VerificationOrchestrator):
    with pytest.raises(err.SessionNotFoundError) as e:
        orchestrator.handle_callback("token", "unknown")
    assert e.value.status_code == 404


def test_callback_expired_session(orchestrator: VerificationOrchestrator, clock: hc.FakeClock):
    session = orchestrator.create(18)
    clock.advance(601)
    with pytest.raises(err.SessionNotFoundError):
        orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)


def test_callback_birthdate(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(18)
    presentation = hc.unsigned_presentation({"birthdate": "2000-06-15"})
    orchestrator.handle_callback(presentation, session.session_id, today=datetime.date(2024, 6, 14))
    assert orchestrator.poll(session.session_id).result.is_old_enough


def test_missing_verification_mode_fails_session(sessions: SessionManager):
    orchestrator = VerificationOrchestrator(sessions, hc.verifier_config(verify_skip_signature=False))
    session = orchestrator.create(18)
    with pytest.raises(err.VerifierConfigurationError):
        orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    assert orchestrator.poll(session.session_id).status == models.SessionStatus.FAILED


def test_signed_presentation(sessions: SessionManager):
    issuer_key = hc.generate_key()
    config = hc.verifier_config(verify_skip_signature=False, issuer_public_jwk=hc.public_jwk_json(issuer_key))
    orchestrator = VerificationOrchestrator(sessions, config)
    session = orchestrator.create(18)
    orchestrator.handle_callback(hc.signed_presentation({"age_over_18": True}, issuer_key), session.session_id)
    assert orchestrator.poll(session.session_id).status == models.SessionStatus.COMPLETED

    forged = orchestrator.create(18)
    with pytest.raises(err.AgeVerificationFailedError):
        orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), forged.session_id)


def test_pairwise_id(sessions: SessionManager):
    orchestrator = VerificationOrchestrator(sessions, hc.verifier_config(pairwise_secret="link-secret"))
    session = orchestrator.create(18)
    orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    claims = orchestrator.poll(session.session_id).result.claims
    assert claims["pairwise_id"] == pairwise_subject("link-secret", hc.HOLDER, hc.VERIFIER_URL)
    assert claims["id"] == hc.HOLDER


def test_no_pairwise_id_without_secret(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(18)
    orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    assert "pairwise_id" not in orchestrator.poll(session.session_id).result.claims


def test_fetch_authorization_request_errors(orchestrator: VerificationOrchestrator):
    with pytest.raises(err.MissingParameterError):
        orchestrator.fetch_authorization_request(None)
    with pytest.raises(err.SessionNotFoundError):
        orchestrator.fetch_authorization_request("unknown")


def test_fetch_with_wallet_nonce(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(18)
    request = orchestrator.fetch_authorization_request(session.session_id, wallet_nonce="n-1")
    assert request.payload["nonce"] == "n-1"
    assert request.payload["state"] == session.session_id


def test_poll_cleanup_failure_is_logged(orchestrator: VerificationOrchestrator, sessions: SessionManager, caplog):
    session = orchestrator.create(18)
    orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    with mock.patch.object(sessions, "delete_session", side_effect=err.StoreUnavailableError("down")), caplog.at_level(logging.INFO):
        status = orchestrator.poll(session.session_id)
    assert status.status == models.SessionStatus.COMPLETED
    assert "Failed to delete terminal session." in caplog.text


def test_poll_store_failure_is_not_not_found(orchestrator: VerificationOrchestrator, sessions: SessionManager):
    with mock.patch.object(sessions, "get_session", side_effect=err.StoreUnavailableError("down")):
        with pytest.raises(err.StoreUnavailableError) as e:
            orchestrator.poll("abc")
    assert e.value.status_code == 503


def test_verify_without_session(orchestrator: VerificationOrchestrator):
    result = orchestrator.verify(hc.unsigned_presentation({"age": 25}), 21)
    assert result.is_old_enough
    assert result.assertion.age_range == ">=21"


@pytest.mark.parametrize("issuer", [[hc.TRUSTED_ISSUER], {"id": hc.TRUSTED_ISSUER}])
def test_issuer_of_other_type_fails_session(orchestrator: VerificationOrchestrator, issuer):
    session = orchestrator.create(18)
    presentation = jwt_utils.encode_unsigned_jwt({**hc.presentation_claims({"age_over_18": True}), "iss": issuer})
    with pytest.raises(err.AgeVerificationFailedError):
        orchestrator.handle_callback(presentation, session.session_id)
    status = orchestrator.poll(session.session_id)
    assert status.status == models.SessionStatus.FAILED
    assert status.error == "Age verification failed"


def test_unexpected_error_fails_session(orchestrator: VerificationOrchestrator):
    session = orchestrator.create(18)
    with mock.patch("age_verifier.verification.verify_age", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            orchestrator.handle_callback(hc.unsigned_presentation({"age_over_18": True}), session.session_id)
    status = orchestrator.poll(session.session_id)
    assert status.status == models.SessionStatus.FAILED, "The session must not stay scanned"
    assert status.error == "Age verification failed"
