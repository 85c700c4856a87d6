# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Networked session store on redis. Suitable for deployments with multiple instances.
"""

import contextlib
import logging
from typing import Iterable

import redis

import age_verifier.models as models
from age_verifier.cache.session_store import SessionStore
from age_verifier.exception import StoreUnavailableError

_logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _backend_errors(action: str):
    """Re-raises every redis failure, timeouts included, as StoreUnavailableError."""
    try:
        yield
    except redis.RedisError as e:
        _logger.error(f"Session store failed to {action}: {e!r}")
        raise StoreUnavailableError(f"Session store failed to {action}") from e


def create_client(url: str, timeout: float) -> redis.Redis:
    """Redis client with every call bounded by timeout seconds."""
    return redis.Redis.from_url(
        url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
    )


class RedisSessionStore(SessionStore):
    def __init__(self, client: redis.Redis, clock: models.Clock = models.utc_now) -> None:
        super().__init__(clock)
        self.client = client

    def _get_raw(self, id: str) -> str | None:
        with _backend_errors("read"):
            return self.client.get(self._get_key(id))

    def set(self, id: str, session: models.VerificationSession, ttl_seconds: int) -> None:
        with _backend_errors("write"):
            self.client.set(self._get_key(id), self._serialize(session), ex=ttl_seconds)

    def delete(self, id: str) -> None:
        with _backend_errors("delete"):
            self.client.delete(self._get_key(id))

    def compare_and_set(
        self,
        id: str,
        expected_statuses: Iterable[models.SessionStatus],
        session: models.VerificationSession,
        ttl_seconds: int,
    ) -> bool:
        key = self._get_key(id)
        expected_statuses = list(expected_statuses)
        with _backend_errors("write"), self.client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(key)
                    current = self._parse(pipe.get(key))
                    if not self._is_expected(current, expected_statuses):
                        pipe.unwatch()
                        return False
                    pipe.multi()
                    pipe.set(key, self._serialize(session), ex=ttl_seconds)
                    pipe.execute()
                    return True
                except redis.WatchError:
                    # Concurrent writer, re-evaluate against the new record
                    continue

    def ping(self) -> bool:
        with _backend_errors("ping"):
            return bool(self.client.ping())
