# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Endpoints for the relying party: start a verification session, poll its state
and check a presentation without session.
"""

import logging

import fastapi
from fastapi import status

import age_verifier.models as models
import age_verifier.orchestrator as orc
from age_verifier.exception import OpenIdError

TAG = "Session"

_logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/oid4vp", tags=[TAG])


@router.post(
    "/session",
    description="Creates a verification session for the given minimum age (default 18). The session expires after 10 minutes.",
    responses={status.HTTP_400_BAD_REQUEST: {"model": OpenIdError}, status.HTTP_503_SERVICE_UNAVAILABLE: {"model": OpenIdError}},
)
def create_session(
    orchestrator: orc.inject,
    body: models.CreateSessionRequest | None = None,
) -> models.CreateSessionResponse:
    if body is None:
        body = models.CreateSessionRequest()
    session = orchestrator.create(body.min_age)
    return models.CreateSessionResponse(session_id=session.session_id, expires_at=session.expires_at)


@router.get(
    "/session/{session_id}",
    description="Returns the state of the session. Completed and failed sessions are returned once and removed afterwards.",
    responses={status.HTTP_404_NOT_FOUND: {"model": OpenIdError}},
    response_model_exclude_none=True,
)
def get_session_status(session_id: str, orchestrator: orc.inject) -> models.SessionStatusResponse:
    return orchestrator.poll(session_id)


@router.post(
    "/verify",
    description="Checks the age claims of a presentation without verification session.",
    response_model_exclude_none=True,
)
def verify(body: models.VerifyRequest, orchestrator: orc.inject) -> models.VerifyResponse:
    return models.VerifyResponse(result=orchestrator.verify(body.presentation, body.min_age))
