"""Dependency injection providers for FastAPI and the Telegram bot."""

from sessionbot.config import settings
from sessionbot.sessions.manager import SessionManager
from sessionbot.sessions.mongo_store import MongoSessionStore

# Global singleton instances (shared connection pool for all requests)
_session_store: MongoSessionStore | None = None
_session_manager: SessionManager | None = None


def get_session_store() -> MongoSessionStore:
    """Return singleton MongoSessionStore instance."""
    global _session_store
    if _session_store is None:
        _session_store = MongoSessionStore.from_settings(settings)
    return _session_store


def get_session_manager() -> SessionManager:
    """Return singleton SessionManager wired to the shared store."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(get_session_store())
    return _session_manager


def close_session_store() -> None:
    """Close the shared store and forget both singletons."""
    global _session_store, _session_manager
    if _session_store is not None:
        _session_store.close()
    _session_store = None
    _session_manager = None
