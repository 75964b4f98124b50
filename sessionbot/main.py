"""FastAPI application entry point with lifespan management."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from sessionbot.api.router import api_router
from sessionbot.config import settings
from sessionbot.dependencies import close_session_store, get_session_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    logger.info("Starting %s backend...", settings.app_name)

    # Connect to MongoDB and make sure the session indexes exist
    store = get_session_store()
    await store.ping()
    await store.initialize()
    logger.info("Session store initialized successfully")

    yield

    # Cleanup
    close_session_store()
    logger.info("%s backend shut down cleanly", settings.app_name)


app = FastAPI(
    title="Session Bot API",
    description="Conversation session directory behind the Telegram bot",
    version="0.1.0",
    lifespan=lifespan,
)

# Mount API routes
app.include_router(api_router, prefix="/api")

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
