# src/parley_relay/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .conversations import router as conversations_router
from .media import router as media_router
from .stream import router as stream_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "conversations_router",
    "media_router",
    "stream_router",
    "users_router",
]
