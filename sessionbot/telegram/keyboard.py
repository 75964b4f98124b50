"""Inline keyboard layout for the session list."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from sessionbot.models.sessions import Session
from sessionbot.sessions.actions import encode_open_action, encode_page_action

PREV_PAGE_BUTTON_TEXT = "⬅️ Previous"
NEXT_PAGE_BUTTON_TEXT = "Next ➡️"
BUTTON_TITLE_MAX_LENGTH = 40


def truncate(text: str, max_len: int) -> str:
    """Cut ``text`` to ``max_len`` code points, ending in ``...`` when cut."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def format_time_ago(t: datetime, now: Optional[datetime] = None) -> str:
    """Render a timestamp relative to ``now``: "just now", "5m ago", "Jan 2"."""
    now = now or datetime.now(timezone.utc)
    elapsed = now - t

    if elapsed < timedelta(minutes=1):
        return "just now"
    if elapsed < timedelta(hours=1):
        return f"{elapsed // timedelta(minutes=1)}m ago"
    if elapsed < timedelta(hours=24):
        return f"{elapsed // timedelta(hours=1)}h ago"
    if elapsed < timedelta(days=7):
        return f"{elapsed // timedelta(days=1)}d ago"

    local = t.astimezone()
    return f"{local:%b} {local.day}"


def format_session_button(session: Session, now: Optional[datetime] = None) -> str:
    # "Title - 2h ago"
    return f"{truncate(session.title, BUTTON_TITLE_MAX_LENGTH)} - {format_time_ago(session.updated_at, now)}"


def build_session_keyboard(
    sessions: Sequence[Session],
    offset: int,
    has_prev: bool,
    has_next: bool,
    page_size: int,
    now: Optional[datetime] = None,
) -> InlineKeyboardMarkup:
    """Lay out one page of sessions, one button per row.

    Rows are: previous-page button (if ``has_prev``), the sessions in the
    order given, next-page button (if ``has_next``).
    """
    rows: list[list[InlineKeyboardButton]] = []

    if has_prev:
        rows.append(
            [
                InlineKeyboardButton(
                    PREV_PAGE_BUTTON_TEXT,
                    callback_data=encode_page_action(max(0, offset - page_size)),
                )
            ]
        )

    for session in sessions:
        rows.append(
            [
                InlineKeyboardButton(
                    format_session_button(session, now),
                    callback_data=encode_open_action(session.id),
                )
            ]
        )

    if has_next:
        rows.append(
            [
                InlineKeyboardButton(
                    NEXT_PAGE_BUTTON_TEXT,
                    callback_data=encode_page_action(offset + page_size),
                )
            ]
        )

    return InlineKeyboardMarkup(rows)
