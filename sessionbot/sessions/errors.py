"""Exceptions raised by the session store and session manager."""

from __future__ import annotations

from typing import Any


class SessionError(Exception):
    """Base class for all session errors."""


class SessionNotFoundError(SessionError):
    """The session (or the user's active pointer) does not exist."""

    def __init__(self, message: str = "session not found") -> None:
        super().__init__(message)


class UnauthorizedSessionError(SessionError):
    """The session exists but belongs to another user."""

    def __init__(self, message: str = "unauthorized access to session") -> None:
        super().__init__(message)


class DuplicateSessionError(SessionError):
    """A session with the same id is already stored."""


class StorageError(SessionError):
    """The backing store failed to complete an operation."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class StorageTimeoutError(StorageError):
    """A store operation did not finish within the configured timeout."""


class StorageFailureError(SessionError):
    """A manager operation failed because of the store.

    Carries the operation name and the ids involved for logging; the
    user-facing text never includes them.
    """

    def __init__(self, operation: str, **context: Any) -> None:
        details = " ".join(f"{key}={value}" for key, value in context.items())
        super().__init__(f"failed to {operation}" + (f" ({details})" if details else ""))
        self.operation = operation
        self.context = context
