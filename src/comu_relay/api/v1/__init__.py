# src/comu_relay/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    blocked_attempts_router,
    conversations_router,
    live_router,
    media_router,
    messages_router,
    users_router,
)

__all__ = [
    "auth_router",
    "blocked_attempts_router",
    "conversations_router",
    "live_router",
    "media_router",
    "messages_router",
    "users_router",
]
