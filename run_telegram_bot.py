"""Standalone script to run the Telegram bot.

Run this script separately from the FastAPI server:
    python run_telegram_bot.py
"""

import asyncio
import logging
import sys

from sessionbot.config import settings
from sessionbot.dependencies import close_session_store, get_session_store
from sessionbot.telegram.bot import get_bot

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler("telegram_bot.log"),
    ],
)

logger = logging.getLogger(__name__)


async def main():
    """Run the Telegram bot."""
    logger.info("=" * 50)
    logger.info("Starting Session Telegram Bot...")
    logger.info("=" * 50)

    try:
        # Initialize session store
        logger.info("Initializing session store...")
        store = get_session_store()
        await store.ping()
        await store.initialize()
        logger.info("Session store initialized successfully")

        # Start bot
        bot = get_bot()
        await bot.start_polling()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal. Shutting down...")
        close_session_store()
        logger.info("Bot shut down cleanly")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        close_session_store()
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
