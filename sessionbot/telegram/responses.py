"""User-facing replies for session errors."""

from __future__ import annotations

from sessionbot.sessions.errors import SessionNotFoundError, UnauthorizedSessionError

NOT_FOUND_MESSAGE = "Session not found. It may have been deleted."
UNAUTHORIZED_MESSAGE = "You don't have permission to access this session."
GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."

NO_SESSIONS_MESSAGE = "You don't have any sessions yet. Start chatting to create one!"
NOTHING_TO_CLOSE_MESSAGE = "No active session to close. Use /open to start one."
SESSION_LIST_HEADER = "Your sessions:"

HELP_MESSAGE = (
    "🤖 *Session Commands*\n\n"
    "/sessions - Browse your sessions\n"
    "/open - Start a new session\n"
    "/close - Close the active session\n"
    "/help - Show this help message\n\n"
    "Any other message goes to your active session."
)


def error_message(exc: Exception) -> str:
    """Map an exception to the text shown to the user; never leaks details."""
    if isinstance(exc, SessionNotFoundError):
        return NOT_FOUND_MESSAGE
    if isinstance(exc, UnauthorizedSessionError):
        return UNAUTHORIZED_MESSAGE
    return GENERIC_ERROR_MESSAGE
