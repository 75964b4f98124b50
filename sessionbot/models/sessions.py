"""Session models for conversation management."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from sessionbot.sessions.titles import generate_title


def utc_now() -> datetime:
    """Current UTC time at millisecond precision (what BSON dates can hold)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class Session(BaseModel):
    """A conversation thread owned by a single Telegram user."""

    id: UUID = Field(default_factory=uuid4)
    user_id: int
    title: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_message: str = ""

    @classmethod
    def new(cls, user_id: int, first_message: str) -> Session:
        """Build a fresh session titled after its first message.

        The raw message is kept as ``last_message``; only the title is
        normalized. Nothing is persisted here.
        """
        now = utc_now()
        return cls(
            id=uuid4(),
            user_id=user_id,
            title=generate_title(first_message),
            created_at=now,
            updated_at=now,
            last_message=first_message,
        )


class SessionListResponse(BaseModel):
    """Response for listing one page of a user's sessions."""

    sessions: list[Session]
    offset: int
    limit: int
    has_more: bool
