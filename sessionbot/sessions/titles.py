"""Session title generation from the first message of a conversation."""

from datetime import datetime

TITLE_MIN_LENGTH = 10
TITLE_MAX_LENGTH = 30
TRUNCATION_MARKER = "..."


def generate_title(message: str) -> str:
    """Derive a short, single-line title from raw message text.

    Whitespace-only input falls back to ``"New Session HH:MM"`` in local
    time. Otherwise line breaks and whitespace runs collapse to single
    spaces, and anything longer than 30 code points is cut to 30 plus
    ``"..."``.
    """
    message = message.strip()

    if not message:
        return f"New Session {datetime.now().strftime('%H:%M')}"

    message = message.replace("\n", " ").replace("\r", " ")
    message = " ".join(message.split())

    if len(message) <= TITLE_MIN_LENGTH:
        return message

    if len(message) > TITLE_MAX_LENGTH:
        return message[:TITLE_MAX_LENGTH] + TRUNCATION_MARKER

    return message
