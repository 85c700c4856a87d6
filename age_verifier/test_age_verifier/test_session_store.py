# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Tests the session store backends, both have to behave identically.
"""

import datetime
from unittest import mock

import fakeredis
import pytest
import redis

import age_verifier.models as models
from age_verifier.cache.session_store import InMemorySessionStore, SessionStore, SweepTimer
from age_verifier.cache.redis_store import RedisSessionStore
from age_verifier.exception import StoreUnavailableError
import age_verifier.test_age_verifier.hard_coded as hc


def _session(clock: hc.FakeClock, session_id: str = "abc", status: models.SessionStatus = models.SessionStatus.PENDING, ttl: int = 600) -> models.VerificationSession:
    now = clock()
    return models.VerificationSession(
        session_id=session_id,
        status=status,
        min_age=18,
        created_at=now,
        expires_at=now + datetime.timedelta(seconds=ttl),
        result=models.SessionResult(is_old_enough=True) if status == models.SessionStatus.COMPLETED else None,
        error="Age verification failed" if status == models.SessionStatus.FAILED else None,
    )


@pytest.fixture
def clock() -> hc.FakeClock:
    return hc.FakeClock()


@pytest.fixture(params=["memory", "redis"])
def store(request, clock) -> SessionStore:
    if request.param == "memory":
        return InMemorySessionStore(clock)
    return RedisSessionStore(fakeredis.FakeRedis(decode_responses=True), clock)


def test_set_and_get(store: SessionStore, clock):
    session = _session(clock)
    store.set(session.session_id, session, 600)
    assert store.get(session.session_id) == session
    assert store.get("unknown") is None


def test_set_overwrites(store: SessionStore, clock):
    session = _session(clock)
    store.set(session.session_id, session, 600)
    scanned = session.model_copy(update={"status": models.SessionStatus.SCANNED})
    store.set(session.session_id, scanned, 600)
    assert store.get(session.session_id).status == models.SessionStatus.SCANNED


def test_stored_copy_is_independent(store: SessionStore, clock):
    session = _session(clock)
    store.set(session.session_id, session, 600)
    session.status = models.SessionStatus.FAILED
    assert store.get(session.session_id).status == models.SessionStatus.PENDING


def test_expired_record_is_absent(store: SessionStore, clock):
    """The record is still in the backend, but past its expires_at."""
    session = _session(clock)
    store.set(session.session_id, session, 3600)
    clock.advance(600)
    assert store.get(session.session_id) is not None, "Still valid at expires_at"
    clock.advance(1)
    assert store.get(session.session_id) is None
    # Dropped on read
    clock.now = hc.START
    assert store.get(session.session_id) is None


def test_delete_is_idempotent(store: SessionStore, clock):
    session = _session(clock)
    store.set(session.session_id, session, 600)
    store.delete(session.session_id)
    store.delete(session.session_id)
    store.delete("never-existed")
    assert store.get(session.session_id) is None


@pytest.mark.parametrize(
    "stored_status, expected, written",
    [
        (models.SessionStatus.PENDING, [models.SessionStatus.PENDING], True),
        (models.SessionStatus.SCANNED, [models.SessionStatus.PENDING], False),
        (models.SessionStatus.SCANNED, [models.SessionStatus.PENDING, models.SessionStatus.SCANNED], True),
        (models.SessionStatus.COMPLETED, [models.SessionStatus.SCANNED], False),
    ],
)
def test_compare_and_set(store: SessionStore, clock, stored_status, expected, written):
    session = _session(clock, status=stored_status)
    store.set(session.session_id, session, 600)
    update = session.model_copy(update={"status": models.SessionStatus.FAILED, "error": "x"})
    assert store.compare_and_set(session.session_id, expected, update, 600) is written
    assert store.get(session.session_id).status == (models.SessionStatus.FAILED if written else stored_status)


def test_compare_and_set_missing_or_expired(store: SessionStore, clock):
    session = _session(clock)
    assert not store.compare_and_set(session.session_id, [models.SessionStatus.PENDING], session, 600)
    store.set(session.session_id, session, 3600)
    clock.advance(601)
    assert not store.compare_and_set(session.session_id, [models.SessionStatus.PENDING], session, 600)


def test_ping(store: SessionStore):
    assert store.ping()


def test_memory_deadline(clock):
    """The backend ttl evicts independent of the record's expires_at."""
    store = InMemorySessionStore(clock)
    session = _session(clock, ttl=3600)
    store.set(session.session_id, session, 10)
    clock.advance(10)
    assert store.get(session.session_id) is not None
    clock.advance(1)
    assert store.get(session.session_id) is None
    assert len(store) == 0


def test_memory_sweep(clock):
    store = InMemorySessionStore(clock)
    for i, ttl in enumerate([60, 600, 1200]):
        session = _session(clock, session_id=str(i), ttl=ttl)
        store.set(session.session_id, session, 3600)
    clock.advance(601)
    assert store.sweep() == 2
    assert len(store) == 1
    assert store.get("2") is not None


def test_sweep_timer(clock):
    store = InMemorySessionStore(clock)
    session = _session(clock, ttl=60)
    store.set(session.session_id, session, 600)
    clock.advance(61)

    timer = SweepTimer(store, interval=3600)
    with mock.patch("age_verifier.cache.session_store.threading.Timer") as timer_class:
        timer.set_timer()
        timer_class.assert_called_once_with(3600, timer._sweep)
        timer._sweep()
        assert len(store) == 0, "Sweep should remove the expired session"
        assert timer_class.call_count == 2, "Timer should reschedule itself"
        timer.cancel_timer()
        timer_class.return_value.cancel.assert_called()
        timer.set_timer()
        assert timer_class.call_count == 2, "A cancelled timer is not rescheduled"


def test_redis_layout(clock):
    client = fakeredis.FakeRedis(decode_responses=True)
    store = RedisSessionStore(client, clock)
    session = _session(clock)
    store.set(session.session_id, session, 600)
    assert client.exists("session:abc")
    assert 0 < client.ttl("session:abc") <= 600
    assert '"sessionId":"abc"' in client.get("session:abc")
    clock.advance(601)
    assert store.get("abc") is None
    assert not client.exists("session:abc"), "Expired record should be removed on read"


@pytest.mark.parametrize("method, args", [("get", ["abc"]), ("delete", ["abc"]), ("ping", [])])
def test_redis_failures_are_store_errors(clock, method, args):
    client = mock.Mock(spec=redis.Redis)
    getattr(client, method).side_effect = redis.exceptions.ConnectionError("down")
    store = RedisSessionStore(client, clock)
    with pytest.raises(StoreUnavailableError):
        getattr(store, method)(*args)


def test_redis_timeout_is_store_error(clock):
    client = mock.Mock(spec=redis.Redis)
    client.set.side_effect = redis.exceptions.TimeoutError("timeout")
    store = RedisSessionStore(client, clock)
    with pytest.raises(StoreUnavailableError) as e:
        store.set("abc", _session(clock), 600)
    assert e.value.status_code == 503
