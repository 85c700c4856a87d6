# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class CamelModel(BaseModel):
    """
    Wire format of the session API is camelCase, attributes stay snake_case.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionStatus(Enum):
    """
    Status which gives information about the state of a verification session
    """

    PENDING = "pending"
    """
    The session was created, the wallet has not submitted anything yet
    """

    SCANNED = "scanned"
    """
    The wallet posted a presentation, the verification is in progress
    """

    COMPLETED = "completed"
    """
    The presentation was verified and the holder is old enough
    """

    FAILED = "failed"
    """
    The presentation was invalid, untrusted or the holder is too young
    """

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


class SessionResult(CamelModel):
    is_old_enough: bool
    claims: dict[str, Any] = {}


class VerificationSession(CamelModel):
    """
    Cached state of one age verification.
    A completed session carries a result, a failed one an error.
    """

    session_id: str
    """
    Used as OpenID4VP state and, without a wallet nonce, as nonce
    """

    status: SessionStatus = SessionStatus.PENDING
    min_age: int = Field(ge=0)
    created_at: datetime.datetime
    expires_at: datetime.datetime
    """
    Hard deadline. A session read past this point does not exist anymore,
    regardless of whether the backend already evicted it.
    """

    result: Optional[SessionResult] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "VerificationSession":
        if self.status == SessionStatus.COMPLETED and self.result is None:
            raise ValueError("A completed session requires a result")
        if self.status == SessionStatus.FAILED and self.error is None:
            raise ValueError("A failed session requires an error")
        return self

    def is_expired(self, now: datetime.datetime) -> bool:
        return now > self.expires_at

    def ttl_seconds(self, now: datetime.datetime) -> int:
        """Remaining lifetime, at least one second, for backend side eviction."""
        return max(1, int((self.expires_at - now).total_seconds()))


class VerificationResult(BaseModel):
    """
    Outcome of decoding a presentation.
    verified_claims is the credentialSubject of the first credential.
    """

    valid: bool
    verified_claims: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class AgeAssertion(CamelModel):
    method: str = "eudi-wallet"
    age_range: str
    """
    eg. >=18
    """
    error: Optional[str] = None


class AgeVerificationResult(CamelModel):
    is_old_enough: bool
    assertion: AgeAssertion


##########
# API IO #
##########


class CreateSessionRequest(CamelModel):
    min_age: int = Field(default=18, ge=0)


class CreateSessionResponse(CamelModel):
    session_id: str
    expires_at: datetime.datetime


class SessionStatusResponse(CamelModel):
    status: SessionStatus
    result: Optional[SessionResult] = None
    error: Optional[str] = None


class CallbackRequest(BaseModel):
    """
    Authorization response posted by the wallet (response_mode direct_post).
    """

    vp_token: Optional[str] = None
    state: Optional[str] = None


class CallbackResponse(BaseModel):
    status: str = "success"
    redirect_uri: str


class VerifyRequest(CamelModel):
    presentation: str
    min_age: int = Field(default=18, ge=0)


class VerifyResponse(BaseModel):
    success: bool = True
    result: AgeVerificationResult
