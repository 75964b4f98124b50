"""Telegram bot handler for browsing and switching conversation sessions.

Provides polling-based update handling; every update is turned into a call
on ``SessionActionRouter``.
"""

import asyncio
import logging
from typing import Optional

from telegram import Bot, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from sessionbot.config import settings
from sessionbot.sessions.manager import SessionManager
from sessionbot.telegram.router import ChatTransport, SessionActionRouter

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = (
    "🔒 Sorry, you don't have access to this assistant. This is a private bot."
)


class TelegramTransport(ChatTransport):
    """Sends replies through the Bot API. Delivery failures are logged only."""

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    async def send_text(
        self,
        chat_id: int,
        text: str,
        keyboard: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=keyboard)
        except TelegramError as e:
            logger.error(f"Failed to send message to chat {chat_id}: {e}")

    async def edit_keyboard(
        self,
        chat_id: int,
        message_id: int,
        keyboard: InlineKeyboardMarkup,
    ) -> None:
        try:
            await self.bot.edit_message_reply_markup(
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=keyboard,
            )
        except TelegramError as e:
            logger.error(f"Failed to edit keyboard of message {message_id} in chat {chat_id}: {e}")


class SessionTelegramBot:
    """Telegram front end for the session directory."""

    def __init__(self, manager: Optional[SessionManager] = None):
        """Initialize the bot; the session manager defaults to the shared one."""
        if manager is None:
            from sessionbot.dependencies import get_session_manager

            manager = get_session_manager()

        self.manager = manager
        self.page_size = settings.sessions_per_page
        self.application: Optional[Application] = None
        self.router: Optional[SessionActionRouter] = None

    def _is_user_allowed(self, user_id: int) -> bool:
        """Check if user ID is in the whitelist."""
        allowed_users = settings.telegram_allowed_users
        if not allowed_users:
            # Empty whitelist allows everyone
            return True
        return user_id in allowed_users

    async def _check_access(self, update: Update) -> bool:
        user_id = update.effective_user.id
        if self._is_user_allowed(user_id):
            return True

        logger.warning(f"Unauthorized access attempt from user {user_id}")
        if update.effective_chat is not None:
            await self.router.transport.send_text(update.effective_chat.id, ACCESS_DENIED_MESSAGE)
        return False

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start command."""
        if not await self._check_access(update):
            return

        user = update.effective_user
        await update.message.reply_text(
            f"Hello {user.first_name}! 👋\n\n"
            "Just send me a message and it goes to your active session. "
            "Use /sessions to browse and switch between your conversations."
        )
        logger.info(f"User {user.id} started conversation")

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /help command."""
        if not await self._check_access(update):
            return
        await self.router.handle_help_command(update.effective_user.id, update.effective_chat.id)

    async def sessions_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /sessions command."""
        if not await self._check_access(update):
            return
        await self.router.handle_list_command(update.effective_user.id, update.effective_chat.id)

    async def open_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /open command."""
        if not await self._check_access(update):
            return
        await self.router.handle_open_command(update.effective_user.id, update.effective_chat.id)

    async def close_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /close command."""
        if not await self._check_access(update):
            return
        await self.router.handle_close_command(update.effective_user.id, update.effective_chat.id)

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle incoming text messages."""
        if not await self._check_access(update):
            return
        await self.router.handle_text(
            update.effective_user.id,
            update.effective_chat.id,
            update.message.text,
        )

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle inline keyboard button clicks."""
        query = update.callback_query

        # Answer immediately so the client stops its loading indicator
        try:
            await query.answer()
        except TelegramError as e:
            logger.warning(f"Failed to answer callback query {query.id}: {e}")

        if not await self._check_access(update):
            return

        message = query.message
        if message is None or query.data is None:
            return

        await self.router.handle_callback(
            query.from_user.id,
            message.chat.id,
            message.message_id,
            query.data,
        )

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log errors raised by handlers."""
        logger.error(f"Error while handling update {update}: {context.error}", exc_info=context.error)

    def build_application(self) -> Application:
        """Build the python-telegram-bot application and register handlers."""
        if not settings.telegram_bot_token:
            logger.error("TELEGRAM_BOT_TOKEN not configured!")
            raise ValueError("TELEGRAM_BOT_TOKEN is required for Telegram bot")

        self.application = ApplicationBuilder().token(settings.telegram_bot_token).build()
        self.router = SessionActionRouter(
            self.manager,
            TelegramTransport(self.application.bot),
            self.page_size,
        )

        self.application.add_handler(CommandHandler("start", self.start_command))
        self.application.add_handler(CommandHandler("help", self.help_command))
        self.application.add_handler(CommandHandler("sessions", self.sessions_command))
        self.application.add_handler(CommandHandler("open", self.open_command))
        self.application.add_handler(CommandHandler("close", self.close_command))
        self.application.add_handler(CallbackQueryHandler(self.handle_callback))
        self.application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_message)
        )
        self.application.add_error_handler(self.error_handler)
        return self.application

    async def start_polling(self) -> None:
        """Start the bot with polling."""
        logger.info("Starting Telegram bot with polling...")
        self.build_application()

        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling(drop_pending_updates=True)

        logger.info("✅ Telegram bot is running and polling for messages!")

        # Keep running
        try:
            while True:
                await asyncio.sleep(1)
        except (KeyboardInterrupt, SystemExit):
            logger.info("Stopping Telegram bot...")
            await self.stop()

    async def stop(self) -> None:
        """Stop the bot gracefully."""
        if self.application:
            logger.info("Stopping Telegram bot...")
            await self.application.updater.stop()
            await self.application.stop()
            await self.application.shutdown()
            logger.info("Telegram bot stopped.")


# Singleton instance
_bot_instance: Optional[SessionTelegramBot] = None


def get_bot() -> SessionTelegramBot:
    """Get or create the bot instance."""
    global _bot_instance
    if _bot_instance is None:
        _bot_instance = SessionTelegramBot()
    return _bot_instance
