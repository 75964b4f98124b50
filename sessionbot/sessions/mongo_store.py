"""MongoDB session store: one document per session, one pointer per user.

Document schemas::

    sessions:
        {
            "_id": "0b7f5c7e-6a43-4a53-9d3e-2b1f8f0c9a11",
            "user_id": 123456789,
            "title": "How do I reset my password?",
            "created_at": ISODate("2026-02-08T10:30:00Z"),
            "updated_at": ISODate("2026-02-08T11:00:00Z"),
            "last_message": "How do I reset my password?"
        }

    active_sessions:
        {
            "_id": 123456789,
            "session_id": "0b7f5c7e-6a43-4a53-9d3e-2b1f8f0c9a11",
            "updated_at": ISODate("2026-02-08T11:00:00Z")
        }

Every write is a single-document operation, so concurrent writers resolve
last-write-wins without application locking. ``updated_at`` is written with
``$max`` so it never moves backwards.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, TypeVar
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from sessionbot.config import Settings
from sessionbot.models.sessions import Session, utc_now
from sessionbot.sessions.errors import (
    DuplicateSessionError,
    SessionNotFoundError,
    StorageError,
    StorageTimeoutError,
)
from sessionbot.sessions.store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

SESSIONS_COLLECTION = "sessions"
ACTIVE_SESSIONS_COLLECTION = "active_sessions"

# Most recently updated first; id breaks ties so pages stay stable.
LIST_SORT = [("updated_at", DESCENDING), ("_id", ASCENDING)]


def _to_bson_datetime(value: datetime) -> datetime:
    """Naive UTC at millisecond precision, the form BSON dates round-trip as."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def _from_bson_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _session_to_doc(session: Session) -> dict[str, Any]:
    return {
        "_id": str(session.id),
        "user_id": session.user_id,
        "title": session.title,
        "created_at": _to_bson_datetime(session.created_at),
        "updated_at": _to_bson_datetime(session.updated_at),
        "last_message": session.last_message,
    }


def _doc_to_session(doc: dict[str, Any]) -> Session:
    return Session(
        id=UUID(doc["_id"]),
        user_id=doc["user_id"],
        title=doc["title"],
        created_at=_from_bson_datetime(doc["created_at"]),
        updated_at=_from_bson_datetime(doc["updated_at"]),
        last_message=doc.get("last_message", ""),
    )


class MongoSessionStore(SessionStore):
    """Session store backed by MongoDB through ``motor``.

    Lifecycle:
        store = MongoSessionStore.from_settings(settings)
        await store.initialize()   # create indexes once at startup
        ...
        store.close()
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        operation_timeout: float | None = 5.0,
        client: AsyncIOMotorClient | None = None,
    ) -> None:
        self._db = database
        self._sessions = database[SESSIONS_COLLECTION]
        self._active = database[ACTIVE_SESSIONS_COLLECTION]
        self._timeout = operation_timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> MongoSessionStore:
        """Open a client for the configured MongoDB deployment.

        Writes are journaled so a session created by one update is visible
        to the next one even across a server restart.
        """
        logger.info("Connecting to MongoDB at %s", settings.mongodb_uri)
        client: AsyncIOMotorClient = AsyncIOMotorClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=5_000,
            journal=True,
        )
        return cls(
            client[settings.mongodb_database],
            operation_timeout=settings.store_timeout_seconds,
            client=client,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the indexes the list and cascade queries rely on."""
        await self._run(
            "initialize",
            self._sessions.create_index(
                [("user_id", ASCENDING), ("updated_at", DESCENDING)],
                name="user_id_updated_at",
            ),
        )
        await self._run(
            "initialize",
            self._active.create_index("session_id", name="session_id"),
        )
        logger.info("Session store indexes ensured")

    def close(self) -> None:
        """Release the MongoDB connection pool, if this store owns one."""
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")

    async def ping(self) -> None:
        await self._run("ping", self._db.command("ping"))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create(self, session: Session) -> None:
        try:
            await self._run("create", self._sessions.insert_one(_session_to_doc(session)))
        except DuplicateKeyError as exc:
            raise DuplicateSessionError(f"session {session.id} already exists") from exc
        logger.debug("Created session %s for user %s", session.id, session.user_id)

    async def get(self, session_id: UUID) -> Session:
        doc = await self._run("get", self._sessions.find_one({"_id": str(session_id)}))
        if doc is None:
            raise SessionNotFoundError()
        return _doc_to_session(doc)

    async def update(self, session: Session) -> Session:
        updated_at = max(_to_bson_datetime(session.updated_at), _to_bson_datetime(utc_now()))
        doc = await self._run(
            "update",
            self._sessions.find_one_and_update(
                {"_id": str(session.id)},
                {
                    "$set": {
                        "title": session.title,
                        "last_message": session.last_message,
                    },
                    "$max": {"updated_at": updated_at},
                },
                return_document=ReturnDocument.AFTER,
            ),
        )
        if doc is None:
            raise SessionNotFoundError()
        return _doc_to_session(doc)

    async def delete(self, session_id: UUID) -> None:
        result = await self._run("delete", self._sessions.delete_one({"_id": str(session_id)}))
        if result.deleted_count == 0:
            raise SessionNotFoundError()

        cleared = await self._run(
            "delete",
            self._active.delete_many({"session_id": str(session_id)}),
        )
        logger.debug(
            "Deleted session %s (cleared %d active pointer(s))",
            session_id,
            cleared.deleted_count,
        )

    async def list_by_user(self, user_id: int, offset: int, limit: int) -> list[Session]:
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        cursor = self._sessions.find(
            {"user_id": user_id},
            sort=LIST_SORT,
            skip=offset,
            limit=limit,
        )

        async def _fetch() -> list[dict[str, Any]]:
            return [doc async for doc in cursor]

        docs = await self._run("list_by_user", _fetch())
        return [_doc_to_session(doc) for doc in docs]

    async def count_by_user(self, user_id: int) -> int:
        return await self._run(
            "count_by_user",
            self._sessions.count_documents({"user_id": user_id}),
        )

    # ------------------------------------------------------------------
    # Active-session pointer
    # ------------------------------------------------------------------

    async def get_active_session(self, user_id: int) -> Session:
        pointer = await self._run("get_active_session", self._active.find_one({"_id": user_id}))
        if pointer is None:
            raise SessionNotFoundError("no active session")

        doc = await self._run(
            "get_active_session",
            self._sessions.find_one({"_id": pointer["session_id"], "user_id": user_id}),
        )
        if doc is None:
            # The session is gone or owned by another user; either way the pointer is
            # unusable. Drop it unless it was re-pointed meanwhile.
            logger.debug(
                "Clearing unusable active pointer for user %s -> %s (deleted or foreign)",
                user_id,
                pointer["session_id"],
            )
            await self._run(
                "get_active_session",
                self._active.delete_one({"_id": user_id, "session_id": pointer["session_id"]}),
            )
            raise SessionNotFoundError("no active session")

        return _doc_to_session(doc)

    async def set_active_session(self, user_id: int, session_id: UUID) -> None:
        await self._run(
            "set_active_session",
            self._active.update_one(
                {"_id": user_id},
                {
                    "$set": {
                        "session_id": str(session_id),
                        "updated_at": _to_bson_datetime(utc_now()),
                    }
                },
                upsert=True,
            ),
        )

    async def clear_active_session(self, user_id: int) -> None:
        await self._run("clear_active_session", self._active.delete_one({"_id": user_id}))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a driver call, bounding it by the operation timeout.

        Driver errors become ``StorageError``; timeouts (ours or the
        driver's) become ``StorageTimeoutError``. ``DuplicateKeyError`` is
        left for the caller to translate.
        """
        try:
            if self._timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise StorageTimeoutError(operation, f"timed out after {self._timeout}s") from exc
        except DuplicateKeyError:
            raise
        except PyMongoError as exc:
            if getattr(exc, "timeout", False):
                raise StorageTimeoutError(operation, str(exc)) from exc
            raise StorageError(operation, str(exc)) from exc
