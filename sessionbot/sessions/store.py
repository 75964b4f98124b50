"""
Session Store Interface - contract for session persistence backends.

Implementations must give atomic upsert semantics for the active-session
pointer and must never move a session's ``updated_at`` backwards.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import UUID

from sessionbot.models.sessions import Session


class SessionStore(ABC):
    """
    Abstract session store. Every method is a coroutine and may be
    cancelled by the awaiting task.
    """

    @abstractmethod
    async def create(self, session: Session) -> None:
        """
        Persist a new session.

        Raises:
            DuplicateSessionError: a session with the same id already exists
        """

    @abstractmethod
    async def get(self, session_id: UUID) -> Session:
        """
        Load a session by id.

        Raises:
            SessionNotFoundError: no session has this id
        """

    @abstractmethod
    async def update(self, session: Session) -> Session:
        """
        Write the mutable fields (title, last_message) of an existing session.

        ``updated_at`` is refreshed to now; a caller-supplied value is kept
        only if it is newer. The stored value never regresses.

        Returns:
            Session: the session as stored after the update

        Raises:
            SessionNotFoundError: no session has this id
        """

    @abstractmethod
    async def delete(self, session_id: UUID) -> None:
        """
        Delete a session and clear any active pointer referencing it.

        Raises:
            SessionNotFoundError: no session has this id
        """

    @abstractmethod
    async def list_by_user(self, user_id: int, offset: int, limit: int) -> list[Session]:
        """
        List a user's sessions, most recently updated first.

        Args:
            user_id: Owner whose sessions are listed
            offset: Number of sessions to skip (>= 0)
            limit: Maximum number of sessions to return (>= 1)

        Returns:
            list[Session]: at most ``limit`` sessions; empty when ``offset``
            is past the end
        """

    @abstractmethod
    async def count_by_user(self, user_id: int) -> int:
        """Return the total number of sessions owned by a user."""

    @abstractmethod
    async def get_active_session(self, user_id: int) -> Session:
        """
        Return the session the user's active pointer references.

        Raises:
            SessionNotFoundError: no pointer is set, or it references a
                session that no longer exists
        """

    @abstractmethod
    async def set_active_session(self, user_id: int, session_id: UUID) -> None:
        """Point the user's active session at ``session_id`` (upsert).

        Ownership is not checked here.
        """

    @abstractmethod
    async def clear_active_session(self, user_id: int) -> None:
        """Remove the user's active pointer. No-op if none is set."""

    @abstractmethod
    async def ping(self) -> None:
        """
        Check that the backend is reachable.

        Raises:
            StorageError: the backend did not answer
        """
