"""Read-only session listing endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sessionbot.config import Settings, get_settings
from sessionbot.dependencies import get_session_manager
from sessionbot.models.sessions import SessionListResponse
from sessionbot.sessions.errors import StorageFailureError
from sessionbot.sessions.manager import SessionManager

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{user_id}", response_model=SessionListResponse)
async def list_sessions(
    user_id: int,
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=100),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> SessionListResponse:
    """Return one page of a user's sessions, most recently updated first.

    ``limit`` defaults to the configured page size.
    """
    limit = limit or settings.sessions_per_page

    try:
        sessions, has_more = await manager.list_sessions(user_id, offset, limit)
    except StorageFailureError as exc:
        logger.error("Failed to list sessions for user %s: %s", user_id, exc, exc_info=True)
        raise HTTPException(status_code=503, detail="Session store unavailable")

    return SessionListResponse(
        sessions=sessions,
        offset=offset,
        limit=limit,
        has_more=has_more,
    )
