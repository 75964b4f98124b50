"""Session manager: business rules on top of a ``SessionStore``.

Ownership checks, pagination flags and the active-session lifecycle live
here. The store is injected at construction so tests can swap it.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, TypeVar
from uuid import UUID

from sessionbot.models.sessions import Session
from sessionbot.sessions.errors import (
    SessionError,
    SessionNotFoundError,
    StorageFailureError,
    UnauthorizedSessionError,
)
from sessionbot.sessions.store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionManager:
    """Coordinates session listing, switching, creation and closing.

    Every method awaits the store sequentially; cancellation of the caller
    propagates to the in-flight store call unchanged.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    @property
    def store(self) -> SessionStore:
        return self._store

    async def list_sessions(
        self,
        user_id: int,
        offset: int,
        limit: int,
    ) -> tuple[list[Session], bool]:
        """Return one page of the user's sessions and whether more follow."""
        try:
            sessions = await self._store.list_by_user(user_id, offset, limit)
            total = await self._store.count_by_user(user_id)
        except SessionError as exc:
            raise StorageFailureError(
                "list sessions", user_id=user_id, offset=offset, limit=limit
            ) from exc

        has_more = offset + limit < total
        return sessions, has_more

    async def switch_session(self, user_id: int, session_id: UUID) -> Session:
        """Make ``session_id`` the user's active session.

        Raises:
            SessionNotFoundError: the session does not exist
            UnauthorizedSessionError: the session belongs to someone else;
                the active pointer is left untouched
        """
        session = await self._guard(
            "get session",
            self._store.get(session_id),
            user_id=user_id,
            session_id=session_id,
        )

        if session.user_id != user_id:
            raise UnauthorizedSessionError()

        await self._guard(
            "set active session",
            self._store.set_active_session(user_id, session_id),
            user_id=user_id,
            session_id=session_id,
        )
        return session

    async def create_session(self, user_id: int, message: str) -> Session:
        """Create a session titled after ``message`` and make it active.

        If activation fails the new session is kept; the failure is still
        raised to the caller.
        """
        session = Session.new(user_id, message)

        await self._guard(
            "create session",
            self._store.create(session),
            user_id=user_id,
            session_id=session.id,
        )
        await self._guard(
            "set active session",
            self._store.set_active_session(user_id, session.id),
            user_id=user_id,
            session_id=session.id,
        )

        logger.info("Created session %s for user %s: %s", session.id, user_id, session.title)
        return session

    async def get_or_create_active_session(self, user_id: int, message: str) -> Session:
        """Return the active session, creating one from ``message`` if none is set.

        Only a missing pointer falls back to creation; any other storage
        failure is raised so an outage does not spawn duplicate sessions.
        """
        session, _ = await self._get_or_create_active_session(user_id, message)
        return session

    async def record_message(self, user_id: int, message: str) -> Session:
        """Route an inbound message to the active session.

        A newly created session already carries ``message``. An existing one
        gets it as ``last_message`` and is written back, which refreshes
        ``updated_at`` and moves it to the top of the list.
        """
        session, created = await self._get_or_create_active_session(user_id, message)
        if created:
            return session

        session.last_message = message
        return await self._guard(
            "update session",
            self._store.update(session),
            user_id=user_id,
            session_id=session.id,
        )

    async def close_active_session(self, user_id: int) -> tuple[Session | None, bool]:
        """Retire the user's active pointer.

        Returns ``(None, False)`` when nothing was active. The session itself
        is never deleted or modified.
        """
        try:
            session = await self._guard(
                "get active session",
                self._store.get_active_session(user_id),
                user_id=user_id,
            )
        except SessionNotFoundError:
            return None, False

        await self._guard(
            "clear active session",
            self._store.clear_active_session(user_id),
            user_id=user_id,
            session_id=session.id,
        )
        return session, True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_or_create_active_session(
        self,
        user_id: int,
        message: str,
    ) -> tuple[Session, bool]:
        try:
            session = await self._guard(
                "get active session",
                self._store.get_active_session(user_id),
                user_id=user_id,
            )
        except SessionNotFoundError:
            return await self.create_session(user_id, message), True
        return session, False

    async def _guard(self, operation: str, awaitable: Awaitable[T], **context: Any) -> T:
        """Await a store call, wrapping unexpected store errors.

        Not-found and unauthorized errors pass through unchanged.
        """
        try:
            return await awaitable
        except (SessionNotFoundError, UnauthorizedSessionError):
            raise
        except SessionError as exc:
            raise StorageFailureError(operation, **context) from exc
