# src/comu_relay/models/__init__.py
"""SQLAlchemy models for the Comu Relay application."""

from .blocked import BlockedUser, BlockedWordAttempt
from .conversation import Conversation
from .message import PendingMessage, StoredMessage
from .user import User

__all__ = [
    "BlockedUser", "BlockedWordAttempt",
    "Conversation",
    "PendingMessage", "StoredMessage",
    "User",
]
