# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Tests the lifecycle of verification sessions
"""

import datetime

import fakeredis
import pydantic
import pytest

import age_verifier.models as models
from age_verifier.cache.session_store import InMemorySessionStore
from age_verifier.cache.redis_store import RedisSessionStore
from age_verifier.session import SessionManager
import age_verifier.test_age_verifier.hard_coded as hc

TTL = datetime.timedelta(seconds=600)


@pytest.fixture
def clock() -> hc.FakeClock:
    return hc.FakeClock()


@pytest.fixture(params=["memory", "redis"])
def manager(request, clock) -> SessionManager:
    if request.param == "memory":
        store = InMemorySessionStore(clock)
    else:
        store = RedisSessionStore(fakeredis.FakeRedis(decode_responses=True), clock)
    return SessionManager(store, clock)


@pytest.mark.parametrize("min_age", [0, 16, 18, 21, 120])
def test_create_session(manager: SessionManager, min_age: int):
    session = manager.create_session(min_age)
    assert session.status == models.SessionStatus.PENDING
    assert session.min_age == min_age
    assert session.expires_at - session.created_at == TTL
    assert session.result is None and session.error is None
    assert manager.get_session(session.session_id) == session


def test_session_ids_are_unique(manager: SessionManager):
    ids = {manager.create_session(18).session_id for _ in range(20)}
    assert len(ids) == 20
    assert all(len(id) == 32 for id in ids), "128 bit hex identifier expected"


def test_negative_min_age(manager: SessionManager):
    with pytest.raises(pydantic.ValidationError):
        manager.create_session(-1)


def test_expiry(manager: SessionManager, clock: hc.FakeClock):
    session = manager.create_session(18)
    clock.advance(600)
    assert manager.get_session(session.session_id) is not None, "Still valid at expires_at"
    clock.advance(0.001)
    assert manager.get_session(session.session_id) is None


def test_expired_session_stays_gone(manager: SessionManager, clock: hc.FakeClock):
    session = manager.create_session(18)
    clock.advance(601)
    assert manager.get_session(session.session_id) is None
    assert manager.update_session(session.session_id, status=models.SessionStatus.SCANNED) is None
    clock.now = hc.START
    assert manager.get_session(session.session_id) is None, "Expired sessions must not be resurrected"


def test_update_restarts_ttl(manager: SessionManager, clock: hc.FakeClock):
    session = manager.create_session(18)
    clock.advance(300)
    updated = manager.update_session(session.session_id, status=models.SessionStatus.SCANNED)
    assert updated.status == models.SessionStatus.SCANNED
    assert updated.expires_at == clock() + TTL
    assert updated.expires_at != session.created_at + TTL
    assert updated.created_at == session.created_at
    clock.advance(599)
    assert manager.get_session(session.session_id) == updated


def test_update_is_shallow_merge(manager: SessionManager):
    session = manager.create_session(18)
    updated = manager.update_session(
        session.session_id,
        status=models.SessionStatus.COMPLETED,
        result=models.SessionResult(is_old_enough=True, claims={"age_over_18": True}),
    )
    stored = manager.get_session(session.session_id)
    assert stored == updated
    assert stored.result.claims == {"age_over_18": True}
    assert stored.min_age == 18


def test_min_age_is_immutable(manager: SessionManager):
    session = manager.create_session(18)
    updated = manager.update_session(session.session_id, min_age=0, created_at=hc.START - datetime.timedelta(days=1))
    assert updated.min_age == 18
    assert updated.created_at == session.created_at
    assert manager.get_session(session.session_id).min_age == 18


def test_update_missing_session(manager: SessionManager):
    assert manager.update_session("unknown", status=models.SessionStatus.FAILED) is None


def test_delete_is_idempotent(manager: SessionManager):
    session = manager.create_session(18)
    manager.delete_session(session.session_id)
    manager.delete_session(session.session_id)
    manager.delete_session("unknown")
    assert manager.get_session(session.session_id) is None


def test_transition_single_flight(manager: SessionManager):
    session = manager.create_session(18)
    first = manager.transition(session.session_id, [models.SessionStatus.PENDING], status=models.SessionStatus.SCANNED)
    second = manager.transition(session.session_id, [models.SessionStatus.PENDING], status=models.SessionStatus.SCANNED)
    assert first is not None and first.status == models.SessionStatus.SCANNED
    assert second is None, "Only one writer may move the session out of pending"


def test_transition_missing_session(manager: SessionManager):
    assert manager.transition("unknown", [models.SessionStatus.PENDING], status=models.SessionStatus.SCANNED) is None


def test_update_is_validated(manager: SessionManager):
    session = manager.create_session(18)
    updated = manager.update_session(session.session_id, status="failed", error="Age verification failed")
    assert updated.status is models.SessionStatus.FAILED
    assert manager.get_session(session.session_id).status is models.SessionStatus.FAILED


@pytest.mark.parametrize(
    "updates",
    [
        {"status": models.SessionStatus.COMPLETED},
        {"status": models.SessionStatus.FAILED},
        {"status": "unknown"},
    ],
)
def test_invalid_update_is_rejected(manager: SessionManager, updates: dict):
    session = manager.create_session(18)
    with pytest.raises(pydantic.ValidationError):
        manager.update_session(session.session_id, **updates)
    assert manager.get_session(session.session_id).status == models.SessionStatus.PENDING, "Rejected updates are not stored"
