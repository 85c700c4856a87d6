# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
The two round trips of the wallet and the polling of the relying party:
create session, fetch authorization request, post presentation, poll status.

States: pending -> scanned -> completed | failed. Terminal sessions are removed
once the relying party has read them.
"""

import datetime
import logging
from typing import Annotated

from fastapi import Depends

import common.key_configuration as key

import age_verifier.config as conf
import age_verifier.models as models
import age_verifier.pairwise as pairwise
import age_verifier.session as session_manager
import age_verifier.verification as ver
from age_verifier import exception as err
from age_verifier.logging import VerifierOperationsLogEntry
from age_verifier.request_builder import AuthorizationRequest, build_authorization_request

_logger = logging.getLogger(__name__)

AGE_VERIFICATION_FAILED = "Age verification failed"


class VerificationOrchestrator:
    def __init__(
        self,
        sessions: session_manager.SessionManager,
        config: conf.VerifierConfig,
        key_configuration: key.KeyConfiguration | None = None,
    ) -> None:
        self.sessions = sessions
        self.config = config
        self.key_configuration = key_configuration

    def _log(self, message: str, operation, step, status=VerifierOperationsLogEntry.Status.success, management_id: str | None = None, error_code: str | None = None) -> None:
        _logger.info(
            VerifierOperationsLogEntry(
                message=message,
                status=status,
                operation=operation,
                step=step,
                management_id=management_id,
                error_code=error_code,
            )
        )

    def _require_session(self, session_id: str) -> models.VerificationSession:
        session = self.sessions.get_session(session_id)
        if session is None:
            raise err.SessionNotFoundError()
        return session

    def create(self, min_age: int) -> models.VerificationSession:
        session = self.sessions.create_session(min_age)
        self._log(
            "Verification session created.",
            VerifierOperationsLogEntry.Operation.session,
            VerifierOperationsLogEntry.Step.create,
            management_id=session.session_id,
        )
        return session

    def fetch_authorization_request(self, session_id: str | None, wallet_nonce: str | None = None) -> AuthorizationRequest:
        """Existence check only, the session status does not change."""
        if not session_id:
            raise err.MissingParameterError("session_id")
        session = self._require_session(session_id)
        request = build_authorization_request(session, self.config, self.key_configuration, wallet_nonce=wallet_nonce)
        self._log(
            f"Authorization request issued as {request.request_format.value}.",
            VerifierOperationsLogEntry.Operation.authorization_request,
            VerifierOperationsLogEntry.Step.fetch,
        )
        return request

    def _claims_for_result(self, claims: dict) -> dict:
        claims = dict(claims)
        subject_id = claims.get("id")
        if self.config.pairwise_secret and isinstance(subject_id, str):
            claims["pairwise_id"] = pairwise.pairwise_subject(self.config.pairwise_secret, subject_id, self.config.client_id)
        return claims

    def _fail(self, session_id: str) -> None:
        if self.sessions.transition(session_id, [models.SessionStatus.SCANNED], status=models.SessionStatus.FAILED, error=AGE_VERIFICATION_FAILED) is None:
            _logger.warning("Session vanished before the failed verification could be recorded.")

    def handle_callback(self, vp_token: str | None, state: str | None, today: datetime.date | None = None) -> models.CallbackResponse:
        """
        Processes the presentation posted by the wallet.

        Only the first post for a pending session is processed, every further post
        is rejected with VerificationProcessClosed.
        """
        if not vp_token:
            raise err.MissingParameterError("vp_token")
        if not state:
            raise err.MissingParameterError("state")
        session = self._require_session(state)

        if self.sessions.transition(state, [models.SessionStatus.PENDING], status=models.SessionStatus.SCANNED) is None:
            self._require_session(state)
            self._log(
                "Presentation posted to a session which is not pending anymore.",
                VerifierOperationsLogEntry.Operation.verification,
                VerifierOperationsLogEntry.Step.callback,
                status=VerifierOperationsLogEntry.Status.error,
                error_code=err.VerificationProcessClosed.error,
            )
            raise err.VerificationProcessClosed()

        try:
            options = ver.VerificationOptions.from_config(self.config)
            age_result, verification = ver.verify_age(vp_token, session.min_age, options, today)
        except Exception:
            # a scanned session never outlives its verification
            self._fail(state)
            raise

        if not age_result.is_old_enough:
            self._fail(state)
            self._log(
                AGE_VERIFICATION_FAILED,
                VerifierOperationsLogEntry.Operation.verification,
                VerifierOperationsLogEntry.Step.callback,
                status=VerifierOperationsLogEntry.Status.error,
                error_code=err.AgeVerificationFailedError.error,
            )
            raise err.AgeVerificationFailedError()

        completed = self.sessions.transition(
            state,
            [models.SessionStatus.SCANNED],
            status=models.SessionStatus.COMPLETED,
            result=models.SessionResult(is_old_enough=True, claims=self._claims_for_result(verification.verified_claims or {})),
        )
        if completed is None:
            raise err.SessionNotFoundError("Session expired during the verification")
        self._log(
            "Age verification completed.",
            VerifierOperationsLogEntry.Operation.verification,
            VerifierOperationsLogEntry.Step.callback,
        )
        return models.CallbackResponse(redirect_uri=f"{self.config.verifier_url}?session={state}")

    def poll(self, session_id: str) -> models.SessionStatusResponse:
        """
        Returns the session state. Terminal sessions are returned once and deleted afterwards,
        a failing deletion is only logged.
        """
        session = self._require_session(session_id)
        response = models.SessionStatusResponse(status=session.status, result=session.result, error=session.error)
        if session.status.is_terminal:
            try:
                self.sessions.delete_session(session_id)
            except err.StoreUnavailableError:
                self._log(
                    "Failed to delete terminal session.",
                    VerifierOperationsLogEntry.Operation.session,
                    VerifierOperationsLogEntry.Step.cleanup,
                    status=VerifierOperationsLogEntry.Status.error,
                    management_id=session_id,
                    error_code=err.StoreUnavailableError.error,
                )
            else:
                self._log(
                    f"Terminal session read with status {session.status.value}.",
                    VerifierOperationsLogEntry.Operation.session,
                    VerifierOperationsLogEntry.Step.poll,
                    management_id=session_id,
                )
        return response

    def verify(self, presentation: str, min_age: int) -> models.AgeVerificationResult:
        """Stateless age check of a presentation, no session involved."""
        age_result, _ = ver.verify_age(presentation, min_age, ver.VerificationOptions.from_config(self.config))
        return age_result


def get_orchestrator(
    sessions: session_manager.inject,
    config: conf.inject,
    key_configuration: key.inject,
) -> VerificationOrchestrator:
    return VerificationOrchestrator(sessions, config, key_configuration)


inject = Annotated[VerificationOrchestrator, Depends(get_orchestrator)]
