# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Endpoints called by the wallet.
https://openid.net/specs/openid-4-verifiable-presentations-1_0.html
"""

import logging
from typing import Annotated, Any

import fastapi
from fastapi import Form, Request, Response, status

import common.key_configuration as key

import age_verifier.models as models
import age_verifier.orchestrator as orc
from age_verifier import exception as err

TAG = "OpenID"

_logger = logging.getLogger(__name__)

router = fastapi.APIRouter(prefix="/oid4vp", tags=[TAG])


def _authorization_response(orchestrator: orc.VerificationOrchestrator, session_id: str | None, wallet_nonce: str | None) -> Response:
    request = orchestrator.fetch_authorization_request(session_id, wallet_nonce)
    return Response(content=request.body, media_type=request.media_type)


@router.get(
    "/authorize",
    description="Returns the authorization request of the session in the configured format.",
    responses={status.HTTP_404_NOT_FOUND: {"model": err.OpenIdError}},
)
def get_authorization_request(
    orchestrator: orc.inject,
    session_id: str | None = None,
    wallet_nonce: str | None = None,
) -> Response:
    return _authorization_response(orchestrator, session_id, wallet_nonce)


@router.post(
    "/authorize",
    description="Request URI method post, the wallet may supply a wallet_nonce to be included in the request.",
    responses={status.HTTP_404_NOT_FOUND: {"model": err.OpenIdError}},
)
def post_authorization_request(
    orchestrator: orc.inject,
    session_id: str | None = None,
    wallet_nonce: Annotated[str | None, Form()] = None,
) -> Response:
    return _authorization_response(orchestrator, session_id, wallet_nonce)


def _as_optional_str(data: Any, name: str) -> str | None:
    value = data.get(name)
    if value is None or isinstance(value, str):
        return value
    raise err.InvalidRequestError(additional_error_description=f"{name} must be a string")


async def callback_parameters(request: Request) -> models.CallbackRequest:
    """The authorization response may be posted as JSON or form encoded (direct_post)."""
    try:
        if request.headers.get("content-type", "").startswith("application/json"):
            data = await request.json()
        else:
            data = await request.form()
    except (ValueError, UnicodeDecodeError) as e:
        raise err.InvalidRequestError(additional_error_description="Body could not be parsed") from e
    if not hasattr(data, "get"):
        raise err.InvalidRequestError(additional_error_description="Body must be an object")
    return models.CallbackRequest(
        vp_token=_as_optional_str(data, "vp_token"),
        state=_as_optional_str(data, "state"),
    )


@router.post(
    "/callback",
    description="Receives the presentation of the wallet and verifies the age of the holder.",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": err.OpenIdError},
        status.HTTP_403_FORBIDDEN: {"model": err.OpenIdError},
        status.HTTP_404_NOT_FOUND: {"model": err.OpenIdError},
    },
)
def callback(
    orchestrator: orc.inject,
    parameters: Annotated[models.CallbackRequest, fastapi.Depends(callback_parameters)],
) -> models.CallbackResponse:
    return orchestrator.handle_callback(parameters.vp_token, parameters.state)


@router.get("/jwks.json", description="Public key to verify signed authorization requests.")
def get_jwks(key_configuration: key.inject) -> dict:
    if key_configuration is None:
        raise fastapi.HTTPException(status.HTTP_404_NOT_FOUND, "No signing key configured")
    return key_configuration.jwks
