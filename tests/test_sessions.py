from datetime import timedelta

import pytest

from paygate.domain.sessions import SessionExpiredError, SessionNotFoundError, SessionStore
from paygate.domain.sessions.store import SESSIONS_NAMESPACE, session_key

pytestmark = pytest.mark.anyio

PAYLOAD = {"orderId": "CRY-20240101-000000-AB12", "usdAmount": "50", "currency": "SOL"}


@pytest.fixture
def sessions(store, clock):
    return SessionStore(store, ttl=timedelta(minutes=30), clock=clock)


async def test_created_session_can_be_read_back(sessions, clock):
    session = await sessions.create(PAYLOAD)

    assert len(session.id) == 64
    assert session.expires_at - session.created_at == timedelta(minutes=30)
    assert await sessions.read(session.id) == PAYLOAD


async def test_session_ids_are_unique(sessions):
    first = await sessions.create(PAYLOAD)
    second = await sessions.create(PAYLOAD)
    assert first.id != second.id


async def test_session_is_still_valid_just_before_expiry(sessions, clock):
    session = await sessions.create(PAYLOAD)
    clock.advance(30 * 60 - 1)
    assert await sessions.read(session.id) == PAYLOAD


async def test_session_expires_at_its_ttl_and_is_removed(sessions, store, clock):
    session = await sessions.create(PAYLOAD)
    clock.advance(30 * 60)

    with pytest.raises(SessionExpiredError):
        await sessions.read(session.id)
    assert await store.get(SESSIONS_NAMESPACE, session_key(session.id)) is None
    with pytest.raises(SessionNotFoundError):
        await sessions.read(session.id)


@pytest.mark.parametrize("session_id", ["", "abc", "0" * 63, "g" * 64, "../" + "0" * 61])
async def test_malformed_ids_are_not_found(sessions, session_id):
    with pytest.raises(SessionNotFoundError):
        await sessions.read(session_id)


async def test_unknown_session(sessions):
    with pytest.raises(SessionNotFoundError):
        await sessions.read("0" * 64)


async def test_corrupted_session_is_discarded(sessions, store):
    session_id = "a" * 64
    await store.put(SESSIONS_NAMESPACE, session_key(session_id), "{not json")

    with pytest.raises(SessionNotFoundError):
        await sessions.read(session_id)
    assert await store.get(SESSIONS_NAMESPACE, session_key(session_id)) is None


async def test_sweep_removes_only_expired_sessions(sessions, store, clock):
    old = await sessions.create(PAYLOAD)
    clock.advance(20 * 60)
    fresh = await sessions.create(PAYLOAD)
    await store.put(SESSIONS_NAMESPACE, session_key("b" * 64), "garbage")
    await store.put(SESSIONS_NAMESPACE, "unrelated", "kept")
    clock.advance(15 * 60)

    assert await sessions.sweep_expired() == 2
    assert await sessions.read(fresh.id) == PAYLOAD
    with pytest.raises(SessionNotFoundError):
        await sessions.read(old.id)
    assert await store.get(SESSIONS_NAMESPACE, "unrelated") == "kept"


async def test_delete(sessions):
    session = await sessions.create(PAYLOAD)
    await sessions.delete(session.id)
    with pytest.raises(SessionNotFoundError):
        await sessions.read(session.id)
