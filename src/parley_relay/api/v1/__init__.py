# src/parley_relay/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    conversations_router,
    media_router,
    stream_router,
    users_router,
)

__all__ = [
    "auth_router",
    "conversations_router",
    "media_router",
    "stream_router",
    "users_router",
]
