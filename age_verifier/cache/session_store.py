# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Abstraction layer for persisting verification sessions.

Records are stored as JSON under the key 'session:{id}' with a time to live.
Every backend re-checks the record's own expires_at on read, so a record the
backend did not evict yet is never handed out.
"""

import abc
import datetime
import logging
import threading
from typing import Iterable

import age_verifier.models as models

_logger = logging.getLogger(__name__)


class SessionStore(abc.ABC):
    """
    Narrow key value interface the session manager depends on.
    """

    cache_namespace = "session"

    def __init__(self, clock: models.Clock = models.utc_now) -> None:
        self._clock = clock

    def _get_key(self, id: str) -> str:
        return f'{self.cache_namespace}:{id}'

    @staticmethod
    def _parse(raw: str | bytes | None) -> models.VerificationSession | None:
        if raw is None:
            return None
        return models.VerificationSession.model_validate_json(raw)

    @staticmethod
    def _serialize(session: models.VerificationSession) -> str:
        return session.model_dump_json(by_alias=True)

    @abc.abstractmethod
    def _get_raw(self, id: str) -> str | bytes | None:
        """Returns the serialized record or None."""

    @abc.abstractmethod
    def set(self, id: str, session: models.VerificationSession, ttl_seconds: int) -> None:
        """Overwrites any existing record for id and restarts its time to live."""

    @abc.abstractmethod
    def delete(self, id: str) -> None:
        """Removes the record. Idempotent."""

    @abc.abstractmethod
    def compare_and_set(
        self,
        id: str,
        expected_statuses: Iterable[models.SessionStatus],
        session: models.VerificationSession,
        ttl_seconds: int,
    ) -> bool:
        """
        Atomically writes session if the stored record exists, is not expired
        and its status is one of expected_statuses.

        Returns:
            bool: whether the write happened
        """

    @abc.abstractmethod
    def ping(self) -> bool:
        """Checks the backend is reachable."""

    def get(self, id: str) -> models.VerificationSession | None:
        session = self._parse(self._get_raw(id))
        if session is None:
            return None
        if session.is_expired(self._clock()):
            _logger.debug("Dropping expired session record")
            self.delete(id)
            return None
        return session

    def _is_expected(self, current: models.VerificationSession | None, expected_statuses: Iterable[models.SessionStatus]) -> bool:
        return current is not None and not current.is_expired(self._clock()) and current.status in set(expected_statuses)


class InMemorySessionStore(SessionStore):
    """
    Single process store. Records are kept serialized, so callers never share
    mutable state with the store.
    Expired records are removed on read and by `sweep`.
    """

    def __init__(self, clock: models.Clock = models.utc_now) -> None:
        super().__init__(clock)
        self._records: dict[str, tuple[datetime.datetime, str]] = {}
        self._lock = threading.Lock()

    def _get_raw(self, id: str) -> str | None:
        with self._lock:
            return self._get_raw_unlocked(id)

    def _get_raw_unlocked(self, id: str) -> str | None:
        key = self._get_key(id)
        entry = self._records.get(key)
        if entry is None:
            return None
        deadline, raw = entry
        if deadline < self._clock():
            del self._records[key]
            return None
        return raw

    def _set_unlocked(self, id: str, session: models.VerificationSession, ttl_seconds: int) -> None:
        deadline = self._clock() + datetime.timedelta(seconds=ttl_seconds)
        self._records[self._get_key(id)] = (deadline, self._serialize(session))

    def set(self, id: str, session: models.VerificationSession, ttl_seconds: int) -> None:
        with self._lock:
            self._set_unlocked(id, session, ttl_seconds)

    def delete(self, id: str) -> None:
        with self._lock:
            self._records.pop(self._get_key(id), None)

    def compare_and_set(
        self,
        id: str,
        expected_statuses: Iterable[models.SessionStatus],
        session: models.VerificationSession,
        ttl_seconds: int,
    ) -> bool:
        with self._lock:
            current = self._parse(self._get_raw_unlocked(id))
            if not self._is_expected(current, expected_statuses):
                return False
            self._set_unlocked(id, session, ttl_seconds)
            return True

    def ping(self) -> bool:
        return True

    def sweep(self) -> int:
        """
        Removes every record past its deadline or its own expires_at.

        Returns:
            int: number of removed records
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, (deadline, raw) in self._records.items() if deadline < now or self._parse(raw).is_expired(now)]
            for key in expired:
                del self._records[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class SweepTimer:
    """Timer, once started will sweep the store every interval, rescheduling itself afterwards"""

    _timer: threading.Timer = None

    def __init__(self, store: InMemorySessionStore, interval: float) -> None:
        self._store = store
        self._interval = interval
        self._cancelled = threading.Event()

    def _sweep(self) -> None:
        if self._cancelled.is_set():
            return
        try:
            removed = self._store.sweep()
            if removed:
                _logger.info(f"Removed {removed} expired sessions")
        finally:
            self.set_timer()

    def set_timer(self) -> None:
        """Schedules the next sweep. Cancels other instances of the timer"""
        if self._cancelled.is_set():
            return
        if self._timer:
            self._timer.cancel()
        self._timer = threading.Timer(self._interval, self._sweep)
        self._timer.daemon = True
        self._timer.start()

    def cancel_timer(self) -> None:
        """Stops the timer thread."""
        self._cancelled.set()
        if self._timer:
            self._timer.cancel()
