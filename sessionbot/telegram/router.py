"""Dispatch of user actions to the session manager.

The router knows nothing about Telegram updates: the bot adapter extracts
user id, chat id and text/callback data and hands them over, together with a
``ChatTransport`` used to reply.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from telegram import InlineKeyboardMarkup

from sessionbot.sessions.actions import (
    InvalidAction,
    OpenSessionAction,
    PageSessionsAction,
    parse_action,
)
from sessionbot.sessions.errors import (
    SessionError,
    SessionNotFoundError,
    UnauthorizedSessionError,
)
from sessionbot.sessions.manager import SessionManager
from sessionbot.telegram.keyboard import build_session_keyboard
from sessionbot.telegram.responses import (
    HELP_MESSAGE,
    NO_SESSIONS_MESSAGE,
    NOTHING_TO_CLOSE_MESSAGE,
    SESSION_LIST_HEADER,
    error_message,
)

logger = logging.getLogger(__name__)


class ChatTransport(ABC):
    """Outbound capability the router needs from the chat platform."""

    @abstractmethod
    async def send_text(
        self,
        chat_id: int,
        text: str,
        keyboard: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        """Send a new message, optionally with an inline keyboard."""

    @abstractmethod
    async def edit_keyboard(
        self,
        chat_id: int,
        message_id: int,
        keyboard: InlineKeyboardMarkup,
    ) -> None:
        """Replace the inline keyboard of an existing message."""


class SessionActionRouter:
    """Routes commands, messages and button clicks to ``SessionManager``."""

    def __init__(
        self,
        manager: SessionManager,
        transport: ChatTransport,
        page_size: int,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.manager = manager
        self.transport = transport
        self.page_size = page_size

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def handle_help_command(self, user_id: int, chat_id: int) -> None:
        await self.transport.send_text(chat_id, HELP_MESSAGE)
        logger.info("help_command: user_id=%s requested help", user_id)

    async def handle_list_command(self, user_id: int, chat_id: int) -> None:
        """Send the first page of the user's sessions as a new message."""
        logger.info("sessions_command: user_id=%s requested session list", user_id)

        try:
            sessions, has_next = await self.manager.list_sessions(user_id, 0, self.page_size)
        except SessionError as exc:
            logger.error(
                "sessions_command: user_id=%s error=%s", user_id, exc, exc_info=True
            )
            await self.transport.send_text(chat_id, error_message(exc))
            return

        if not sessions:
            logger.info("sessions_command: user_id=%s has no sessions", user_id)
            await self.transport.send_text(chat_id, NO_SESSIONS_MESSAGE)
            return

        keyboard = build_session_keyboard(sessions, 0, False, has_next, self.page_size)
        await self.transport.send_text(chat_id, SESSION_LIST_HEADER, keyboard)
        logger.info(
            "sessions_command: user_id=%s sent %d session(s) has_next=%s",
            user_id,
            len(sessions),
            has_next,
        )

    async def handle_open_command(self, user_id: int, chat_id: int) -> None:
        """Start a fresh session with a time-based default title."""
        try:
            session = await self.manager.create_session(user_id, "")
        except SessionError as exc:
            logger.error("open_command: user_id=%s error=%s", user_id, exc, exc_info=True)
            await self.transport.send_text(chat_id, error_message(exc))
            return

        logger.info("open_command: user_id=%s opened session %s", user_id, session.id)
        await self.transport.send_text(chat_id, f"✅ Opened new session: {session.title}")

    async def handle_close_command(self, user_id: int, chat_id: int) -> None:
        try:
            session, closed = await self.manager.close_active_session(user_id)
        except SessionError as exc:
            logger.error("close_command: user_id=%s error=%s", user_id, exc, exc_info=True)
            await self.transport.send_text(chat_id, error_message(exc))
            return

        if not closed:
            logger.info("close_command: user_id=%s had no active session", user_id)
            await self.transport.send_text(chat_id, NOTHING_TO_CLOSE_MESSAGE)
            return

        logger.info("close_command: user_id=%s closed session %s", user_id, session.id)
        await self.transport.send_text(chat_id, f"✅ Closed session: {session.title}")

    # ------------------------------------------------------------------
    # Messages and button clicks
    # ------------------------------------------------------------------

    async def handle_text(self, user_id: int, chat_id: int, text: str) -> None:
        """Route a plain text message to the user's active session."""
        logger.debug("message_handler: user_id=%s message_length=%d", user_id, len(text))

        try:
            session = await self.manager.record_message(user_id, text)
        except SessionError as exc:
            logger.error("message_handler: user_id=%s error=%s", user_id, exc, exc_info=True)
            await self.transport.send_text(chat_id, error_message(exc))
            return

        logger.info("message_handler: user_id=%s routed to session %s", user_id, session.id)
        await self.transport.send_text(chat_id, f"Message received in session: {session.title}")

    async def handle_callback(
        self,
        user_id: int,
        chat_id: int,
        message_id: int,
        data: str,
    ) -> None:
        """Decode a button's callback data and run the action it names."""
        action = parse_action(data)

        if isinstance(action, OpenSessionAction):
            await self._open_session(user_id, chat_id, action)
        elif isinstance(action, PageSessionsAction):
            await self._page_sessions(user_id, chat_id, message_id, action)
        elif isinstance(action, InvalidAction):
            logger.warning(
                "callback_query: user_id=%s dropped invalid callback data %r (%s)",
                user_id,
                action.data,
                action.reason,
            )

    async def _open_session(self, user_id: int, chat_id: int, action: OpenSessionAction) -> None:
        try:
            session = await self.manager.switch_session(user_id, action.session_id)
        except UnauthorizedSessionError as exc:
            logger.warning(
                "open_session: user_id=%s unauthorized access attempt session_id=%s",
                user_id,
                action.session_id,
            )
            await self.transport.send_text(chat_id, error_message(exc))
            return
        except SessionNotFoundError as exc:
            logger.warning(
                "open_session: user_id=%s session not found session_id=%s",
                user_id,
                action.session_id,
            )
            await self.transport.send_text(chat_id, error_message(exc))
            return
        except SessionError as exc:
            logger.error(
                "open_session: user_id=%s session_id=%s error=%s",
                user_id,
                action.session_id,
                exc,
                exc_info=True,
            )
            await self.transport.send_text(chat_id, error_message(exc))
            return

        logger.info("open_session: user_id=%s switched to session %s", user_id, session.id)
        await self.transport.send_text(chat_id, f"✅ Switched to session: {session.title}")

    async def _page_sessions(
        self,
        user_id: int,
        chat_id: int,
        message_id: int,
        action: PageSessionsAction,
    ) -> None:
        logger.debug(
            "page_sessions: user_id=%s offset=%d limit=%d",
            user_id,
            action.offset,
            self.page_size,
        )

        try:
            sessions, has_next = await self.manager.list_sessions(
                user_id, action.offset, self.page_size
            )
        except SessionError as exc:
            logger.error(
                "page_sessions: user_id=%s offset=%d error=%s",
                user_id,
                action.offset,
                exc,
                exc_info=True,
            )
            await self.transport.send_text(chat_id, error_message(exc))
            return

        keyboard = build_session_keyboard(
            sessions,
            action.offset,
            action.offset > 0,
            has_next,
            self.page_size,
        )
        await self.transport.edit_keyboard(chat_id, message_id, keyboard)
        logger.info(
            "page_sessions: user_id=%s offset=%d sent %d session(s) has_next=%s",
            user_id,
            action.offset,
            len(sessions),
            has_next,
        )
