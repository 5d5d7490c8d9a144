# src/comu_relay/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .blocked_attempts import router as blocked_attempts_router
from .conversations import router as conversations_router
from .live import router as live_router
from .media import router as media_router
from .messages import router as messages_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "blocked_attempts_router",
    "conversations_router",
    "live_router",
    "media_router",
    "messages_router",
    "users_router",
]
