# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .authorization_response_errors import OpenIdVerificationError, InvalidRequestError

_logger = logging.getLogger(__name__)


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Configure exception handlers on the FastAPI app instance to conform to the OpenID4VP error responses.
    Changed 422 Unprocessable Entity to 400 Bad Request

    Args:
        app (FastAPI): the instance to configure the handlers for.
    """

    @app.exception_handler(OpenIdVerificationError)
    async def openid_verification_exception_handler(request: Request, exc: OpenIdVerificationError):
        # Create a resonse based on the configured fields
        content_builder = {}

        for field_name in exc._fields:
            content_builder[field_name] = getattr(exc, field_name)

        # Include all optional fields with a value which is not None
        for field_name in exc._optional_fields:
            if getattr(exc, field_name, None) is not None:
                content_builder[field_name] = getattr(exc, field_name)

        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            _logger.error(f"OID4VP Exception {exc.status_code=} {content_builder}")
        else:
            _logger.info(f"OID4VP Exception {exc.status_code=} {content_builder}")
        return JSONResponse(
            status_code=exc.status_code,
            headers=exc.headers,
            content=content_builder,
        )

    @app.exception_handler(RequestValidationError)
    async def openid_invalid_request_exception_handler(request: Request, exc: RequestValidationError):
        """
        Recasts Validation Errors to OpenID4VP conform exceptions
        """
        wrapper_exception = InvalidRequestError()
        wrapper_exception.additional_error_description = f"Details: {exc.errors()}"

        return await openid_verification_exception_handler(request, wrapper_exception)
