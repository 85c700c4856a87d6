# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Errors rendered to wallets and relying parties as defined in [RFC6749]
https://www.rfc-editor.org/rfc/rfc6749.html#section-4.1.2.1
"""
from fastapi import HTTPException, status
from pydantic import BaseModel

__all__ = [
    "OpenIdError",
    "OpenIdVerificationError",
    "InvalidRequestError",
    "AccessDeniedError",
    "ServerError",
    "TemporarilyUnavailableError",
]


class OpenIdError(BaseModel):
    """
    Error Class as defined in OpenID4VC/RFC 6749 standard.
    * error: Machine readable code identifying the exception
    * error_description: Human readable error description of the error to help the developer
    * additional_error_description: Further human readable information on the error
    """

    error: str
    error_description: str
    additional_error_description: str | None = None


class OpenIdVerificationError(HTTPException):
    """Base class for all openid verification exceptions."""

    error: str = None
    """Machine readable code identifieng the exception."""

    error_description: str = None
    """Human readable error description for the error type."""

    _fields: list[str] = [
        "error",
        "error_description",
    ]
    """Fields to render into the response."""

    _optional_fields: list[str] = ["additional_error_description"]
    """Optional fiels which only get renderd into the response if available."""

    def __init__(self, status_code: int = 400, additional_error_description: str = None) -> None:
        """Create a OpenId verification exception.

        Args:
            status_code (int, optional):  status code for the rendered response. Defaults to 400.
            additional_error_description (str, optional): Additional, human readable data, to identify the issue resulting in this exception.
        """
        super().__init__(status_code, self.error, headers={"Cache-Control": "no-store"})
        self.additional_error_description = additional_error_description


class InvalidRequestError(OpenIdVerificationError):
    """The request is missing a required parameter, includes an invalid parameter value, includes a parameter more than once, or is otherwise malformed."""

    error = "invalid_request"
    error_description = "The request is missing a required parameter, includes an invalid parameter value, includes a parameter more than once, or is otherwise malformed."


class AccessDeniedError(OpenIdVerificationError):
    """The resource owner or authorization server denied the request."""

    error = "access_denied"
    error_description = "The resource owner or authorization server denied the request."

    def __init__(self, additional_error_description: str = None) -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, additional_error_description)


class ServerError(OpenIdVerificationError):
    """The authorization server encountered an unexpected condition that prevented it from fulfilling the request."""

    error = "server_error"
    error_description = "The server encountered an unexpected condition that prevented it from fulfilling the request."

    def __init__(self, additional_error_description: str = None) -> None:
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, additional_error_description)


class TemporarilyUnavailableError(OpenIdVerificationError):
    """The server is currently unable to handle the request due to a temporary overloading or maintenance."""

    error = "temporarily_unavailable"
    error_description = "The server is currently unable to handle the request."

    def __init__(self, additional_error_description: str = None) -> None:
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, additional_error_description)
