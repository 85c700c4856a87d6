# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Errors of the age verification round trip (create session, fetch request, post presentation, poll).
"""

from fastapi import status

from .authorization_response_errors import (
    AccessDeniedError,
    InvalidRequestError,
    OpenIdVerificationError,
    ServerError,
    TemporarilyUnavailableError,
)

__all__ = [
    "MissingParameterError",
    "SessionNotFoundError",
    "VerificationProcessClosed",
    "AgeVerificationFailedError",
    "VerifierConfigurationError",
    "StoreUnavailableError",
]


class MissingParameterError(InvalidRequestError):
    """A required parameter (session_id, vp_token, state) is missing."""

    def __init__(self, parameter: str) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, f"{parameter} parameter required")
        self.parameter = parameter


class SessionNotFoundError(OpenIdVerificationError):
    """The session does not exist or has expired."""

    error = "session_not_found"
    error_description = "Session not found or expired"

    def __init__(self, additional_error_description: str = None) -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, additional_error_description)


class VerificationProcessClosed(OpenIdVerificationError):
    error = "verification_process_closed"
    error_description = "The verification process is already in progress or completed. Additional responses are not allowed."

    def __init__(self, additional_error_description: str = None) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, additional_error_description)


class AgeVerificationFailedError(AccessDeniedError):
    """
    The presentation was rejected. The reason is only logged,
    the wallet gets the fixed description.
    """

    error_description = "Age verification failed"


class VerifierConfigurationError(ServerError):
    """Signing key or verification mode is missing. Never downgraded to an insecure default."""

    error_description = "The verifier is not configured for this operation."


class StoreUnavailableError(TemporarilyUnavailableError):
    """The session backend failed or timed out. Distinct from a missing session."""

    error_description = "The session store is currently unavailable."
