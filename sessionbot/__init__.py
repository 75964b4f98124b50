"""Conversation session directory for a Telegram bot."""

__version__ = "0.1.0"
