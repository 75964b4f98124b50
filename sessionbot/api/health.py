"""Health check endpoint for infrastructure monitoring."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from sessionbot.dependencies import get_session_store
from sessionbot.sessions.errors import StorageError
from sessionbot.sessions.store import SessionStore

logger = logging.getLogger(__name__)
router = APIRouter()


async def _check_mongodb(store: SessionStore) -> dict[str, Any]:
    """Ping MongoDB and return status."""
    try:
        await store.ping()
        return {"status": "healthy"}
    except StorageError as exc:
        logger.warning("MongoDB health check failed: %s", exc)
        return {"status": "unhealthy", "error": str(exc)}


@router.get("")
async def health_check(
    store: SessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    """Return aggregate health of all backend services."""
    services = {
        "mongodb": await _check_mongodb(store),
    }

    overall = (
        "healthy"
        if all(s["status"] == "healthy" for s in services.values())
        else "degraded"
    )

    return {
        "status": overall,
        "services": services,
    }
