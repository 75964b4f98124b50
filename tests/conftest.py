"""Shared test fixtures for the session bot."""

import os

# Set test environment variables before importing app modules
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:test-token")
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("SESSIONS_PER_PAGE", "6")

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from telegram import InlineKeyboardMarkup

from sessionbot.dependencies import get_session_manager, get_session_store
from sessionbot.main import app
from sessionbot.models.sessions import Session, utc_now
from sessionbot.sessions.manager import SessionManager
from sessionbot.sessions.mongo_store import MongoSessionStore
from sessionbot.telegram.router import ChatTransport, SessionActionRouter

PAGE_SIZE = 6


class RecordingTransport(ChatTransport):
    """Chat transport that remembers everything it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str, Optional[InlineKeyboardMarkup]]] = []
        self.edited: list[tuple[int, int, InlineKeyboardMarkup]] = []

    async def send_text(self, chat_id, text, keyboard=None) -> None:
        self.sent.append((chat_id, text, keyboard))

    async def edit_keyboard(self, chat_id, message_id, keyboard) -> None:
        self.edited.append((chat_id, message_id, keyboard))

    @property
    def last_text(self) -> str:
        return self.sent[-1][1]


def make_session(user_id: int, title: str, minutes_ago: int = 0) -> Session:
    """Build a session whose timestamps lie ``minutes_ago`` in the past."""
    when = utc_now() - timedelta(minutes=minutes_ago)
    return Session(
        user_id=user_id,
        title=title,
        created_at=when,
        updated_at=when,
        last_message=title,
    )


@pytest_asyncio.fixture
async def store() -> MongoSessionStore:
    """Session store on an in-memory MongoDB with indexes created."""
    database = AsyncMongoMockClient()["sessionbot_test"]
    session_store = MongoSessionStore(database, operation_timeout=5.0)
    await session_store.initialize()
    return session_store


@pytest.fixture
def manager(store: MongoSessionStore) -> SessionManager:
    return SessionManager(store)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def router(manager: SessionManager, transport: RecordingTransport) -> SessionActionRouter:
    return SessionActionRouter(manager, transport, page_size=PAGE_SIZE)


@pytest_asyncio.fixture
async def client(store: MongoSessionStore) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the mock store."""
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_session_manager] = lambda: SessionManager(store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
