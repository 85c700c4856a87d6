# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Lifecycle of verification sessions.

The session manager is the only component mutating sessions. Every write
restarts the fixed 10 minute window, counted from the write and not from the
creation of the session.
"""

import datetime
import logging
import uuid
from typing import Annotated, Any, Iterable

from fastapi import Depends

import age_verifier.models as models
from age_verifier.cache import session_cache
from age_verifier.cache.session_store import SessionStore

_logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 600


class SessionManager:
    def __init__(self, store: SessionStore, clock: models.Clock = models.utc_now, ttl_seconds: int = SESSION_TTL_SECONDS) -> None:
        self._store = store
        self._clock = clock
        self._ttl = ttl_seconds

    def _deadline(self, now: datetime.datetime) -> datetime.datetime:
        return now + datetime.timedelta(seconds=self._ttl)

    def create_session(self, min_age: int) -> models.VerificationSession:
        now = self._clock()
        session = models.VerificationSession(
            session_id=uuid.uuid4().hex,
            status=models.SessionStatus.PENDING,
            min_age=min_age,
            created_at=now,
            expires_at=self._deadline(now),
        )
        self._store.set(session.session_id, session, self._ttl)
        return session

    def get_session(self, session_id: str) -> models.VerificationSession | None:
        """Returns None if the session is absent or past its expires_at."""
        session = self._store.get(session_id)
        if session is not None and session.is_expired(self._clock()):
            self._store.delete(session_id)
            return None
        return session

    def _merged(self, session: models.VerificationSession, updates: dict[str, Any]) -> models.VerificationSession:
        # session_id, min_age and created_at are immutable
        updates = {k: v for k, v in updates.items() if k not in ("session_id", "min_age", "created_at")}
        updates["expires_at"] = self._deadline(self._clock())
        # status and outcome are validated together
        return models.VerificationSession.model_validate({**session.model_dump(), **updates})

    def update_session(self, session_id: str, **updates: Any) -> models.VerificationSession | None:
        """
        Shallow merge of updates into the session. Missing or expired sessions are
        not an error, the update is skipped and None returned.
        """
        session = self.get_session(session_id)
        if session is None:
            return None
        updated = self._merged(session, updates)
        self._store.set(session_id, updated, self._ttl)
        return updated

    def transition(
        self,
        session_id: str,
        expected_statuses: Iterable[models.SessionStatus],
        **updates: Any,
    ) -> models.VerificationSession | None:
        """
        Like `update_session`, but only commits if the stored status is still one
        of expected_statuses. Returns None if the session is gone or was changed
        by another writer in the meantime.
        """
        expected_statuses = list(expected_statuses)
        session = self.get_session(session_id)
        if session is None or session.status not in expected_statuses:
            return None
        updated = self._merged(session, updates)
        if not self._store.compare_and_set(session_id, expected_statuses, updated, self._ttl):
            return None
        return updated

    def delete_session(self, session_id: str) -> None:
        self._store.delete(session_id)


def get_session_manager(store: session_cache.inject) -> SessionManager:
    return SessionManager(store)


inject = Annotated[SessionManager, Depends(get_session_manager)]
