"""Tests for SessionManager business rules."""

from uuid import uuid4

import pytest

from sessionbot.models.sessions import Session
from sessionbot.sessions.errors import (
    SessionNotFoundError,
    StorageError,
    StorageFailureError,
    UnauthorizedSessionError,
)
from sessionbot.sessions.manager import SessionManager
from sessionbot.sessions.mongo_store import MongoSessionStore

from tests.conftest import make_session


async def _seed(store: MongoSessionStore, user_id: int, count: int) -> list[Session]:
    sessions = [make_session(user_id, f"session {i}", minutes_ago=i) for i in range(count)]
    for session in sessions:
        await store.create(session)
    return sessions


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("total", "offset", "limit", "expected_len", "expected_more"),
    [
        (0, 0, 6, 0, False),
        (6, 0, 6, 6, False),
        (7, 0, 6, 6, True),
        (7, 6, 6, 1, False),
        (10, 3, 3, 3, True),
        (10, 9, 3, 1, False),
        (4, 10, 3, 0, False),
    ],
)
async def test_list_sessions_pagination(
    manager: SessionManager,
    store: MongoSessionStore,
    total: int,
    offset: int,
    limit: int,
    expected_len: int,
    expected_more: bool,
) -> None:
    await _seed(store, 1, total)
    await _seed(store, 2, 3)

    sessions, has_more = await manager.list_sessions(1, offset, limit)

    assert len(sessions) == min(limit, max(0, total - offset))
    assert len(sessions) == expected_len
    assert has_more is expected_more
    assert all(s.user_id == 1 for s in sessions)


@pytest.mark.asyncio
async def test_list_sessions_wraps_store_failures(
    manager: SessionManager, store: MongoSessionStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken(user_id):
        raise StorageError("count_by_user", "connection refused")

    monkeypatch.setattr(store, "count_by_user", broken)

    with pytest.raises(StorageFailureError) as exc_info:
        await manager.list_sessions(1, 0, 6)
    assert exc_info.value.operation == "list sessions"
    assert exc_info.value.context["user_id"] == 1
    assert isinstance(exc_info.value.__cause__, StorageError)


@pytest.mark.asyncio
async def test_switch_session_activates_own_session(
    manager: SessionManager, store: MongoSessionStore
) -> None:
    sessions = await _seed(store, 1, 2)

    switched = await manager.switch_session(1, sessions[1].id)

    assert switched.id == sessions[1].id
    assert (await store.get_active_session(1)).id == sessions[1].id


@pytest.mark.asyncio
async def test_switch_session_rejects_foreign_session(
    manager: SessionManager, store: MongoSessionStore
) -> None:
    mine = await manager.create_session(1, "mine")
    theirs = await manager.create_session(2, "theirs")

    with pytest.raises(UnauthorizedSessionError):
        await manager.switch_session(1, theirs.id)

    assert (await store.get_active_session(1)).id == mine.id


@pytest.mark.asyncio
async def test_switch_session_unknown_id(manager: SessionManager) -> None:
    with pytest.raises(SessionNotFoundError):
        await manager.switch_session(1, uuid4())


@pytest.mark.asyncio
async def test_create_session_persists_and_activates(
    manager: SessionManager, store: MongoSessionStore
) -> None:
    session = await manager.create_session(11, "Plan my trip to Japan")

    stored = await store.get(session.id)
    assert stored.user_id == 11
    assert stored.title == "Plan my trip to Japan"
    assert stored.last_message == "Plan my trip to Japan"
    assert (await store.get_active_session(11)).id == session.id


@pytest.mark.asyncio
async def test_create_session_keeps_session_when_activation_fails(
    manager: SessionManager, store: MongoSessionStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken(user_id, session_id):
        raise StorageError("set_active_session", "write conflict")

    monkeypatch.setattr(store, "set_active_session", broken)

    with pytest.raises(StorageFailureError) as exc_info:
        await manager.create_session(11, "orphan")

    assert exc_info.value.operation == "set active session"
    assert await store.count_by_user(11) == 1


@pytest.mark.asyncio
async def test_create_session_with_empty_message_uses_default_title(
    manager: SessionManager,
) -> None:
    session = await manager.create_session(3, "")
    assert session.title.startswith("New Session ")
    assert session.last_message == ""


@pytest.mark.asyncio
async def test_get_or_create_active_session_is_idempotent(
    manager: SessionManager, store: MongoSessionStore
) -> None:
    first = await manager.get_or_create_active_session(20, "hello there, bot")
    assert await store.count_by_user(20) == 1
    assert (await store.get_active_session(20)).id == first.id

    second = await manager.get_or_create_active_session(20, "another message")
    assert second.id == first.id
    assert await store.count_by_user(20) == 1


@pytest.mark.asyncio
async def test_get_or_create_does_not_create_on_storage_outage(
    manager: SessionManager, store: MongoSessionStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def outage(user_id):
        raise StorageError("get_active_session", "connection reset")

    monkeypatch.setattr(store, "get_active_session", outage)

    with pytest.raises(StorageFailureError):
        await manager.get_or_create_active_session(20, "hello")
    assert await store.count_by_user(20) == 0


@pytest.mark.asyncio
async def test_record_message_updates_existing_session(
    manager: SessionManager, store: MongoSessionStore
) -> None:
    old = make_session(4, "older thread", minutes_ago=120)
    await store.create(old)
    await store.create(make_session(4, "newer thread", minutes_ago=5))
    await manager.switch_session(4, old.id)

    routed = await manager.record_message(4, "follow-up question")

    assert routed.id == old.id
    assert routed.last_message == "follow-up question"
    assert routed.title == "older thread"
    sessions, _ = await manager.list_sessions(4, 0, 6)
    assert sessions[0].id == old.id


@pytest.mark.asyncio
async def test_record_message_creates_session_when_none_active(
    manager: SessionManager, store: MongoSessionStore
) -> None:
    session = await manager.record_message(5, "first ever message")

    assert session.title == "first ever message"
    assert session.last_message == "first ever message"
    assert await store.count_by_user(5) == 1


@pytest.mark.asyncio
async def test_close_active_session(manager: SessionManager, store: MongoSessionStore) -> None:
    created = await manager.create_session(8, "closing time")

    closed_session, closed = await manager.close_active_session(8)
    assert closed is True
    assert closed_session.id == created.id

    again, closed_again = await manager.close_active_session(8)
    assert again is None
    assert closed_again is False

    # History is kept
    assert (await store.get(created.id)).title == "closing time"


@pytest.mark.asyncio
async def test_close_without_active_session(manager: SessionManager) -> None:
    session, closed = await manager.close_active_session(99)
    assert session is None
    assert closed is False
