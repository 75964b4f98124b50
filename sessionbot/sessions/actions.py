"""Compact action strings attached to inline-keyboard buttons.

Two kinds of action exist:

- ``open_s_<session uuid>`` opens (switches to) a session
- ``page_sessions_<offset>`` re-renders the session list at ``offset``

Telegram limits ``callback_data`` to 64 bytes, so encoding refuses anything
longer. Decoding never raises: unknown or malformed data parses into
``InvalidAction``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

OPEN_SESSION_PREFIX = "open_s_"
PAGE_SESSIONS_PREFIX = "page_sessions_"
MAX_CALLBACK_DATA_BYTES = 64
# Offsets reach the store as a BSON int64 skip.
MAX_PAGE_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class OpenSessionAction:
    session_id: UUID


@dataclass(frozen=True)
class PageSessionsAction:
    offset: int


@dataclass(frozen=True)
class InvalidAction:
    data: str
    reason: str


SessionAction = Union[OpenSessionAction, PageSessionsAction, InvalidAction]


def _checked(data: str) -> str:
    size = len(data.encode("utf-8"))
    if size > MAX_CALLBACK_DATA_BYTES:
        raise ValueError(f"callback data is {size} bytes, limit is {MAX_CALLBACK_DATA_BYTES}")
    return data


def encode_open_action(session_id: UUID) -> str:
    return _checked(f"{OPEN_SESSION_PREFIX}{session_id}")


def encode_page_action(offset: int) -> str:
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    if offset > MAX_PAGE_OFFSET:
        raise ValueError(f"offset must be <= {MAX_PAGE_OFFSET}, got {offset}")
    return _checked(f"{PAGE_SESSIONS_PREFIX}{offset}")


def parse_action(data: str) -> SessionAction:
    """Decode callback data into one of the action variants."""
    if len(data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        return InvalidAction(data, "callback data too long")

    if data.startswith(OPEN_SESSION_PREFIX):
        raw_id = data[len(OPEN_SESSION_PREFIX):]
        try:
            return OpenSessionAction(UUID(raw_id))
        except ValueError:
            return InvalidAction(data, f"invalid session id {raw_id!r}")

    if data.startswith(PAGE_SESSIONS_PREFIX):
        raw_offset = data[len(PAGE_SESSIONS_PREFIX):]
        # ASCII digits only; no sign, no whitespace
        if not (raw_offset.isascii() and raw_offset.isdigit()):
            return InvalidAction(data, f"invalid offset {raw_offset!r}")
        offset = int(raw_offset)
        if offset > MAX_PAGE_OFFSET:
            return InvalidAction(data, "offset out of range")
        return PageSessionsAction(offset)

    return InvalidAction(data, "unknown action")
