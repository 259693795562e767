# src/parley_relay/models/__init__.py
"""SQLAlchemy models for the Parley Relay service."""

from .conversation import (
    CONVERSATION_KIND_DIRECT,
    CONVERSATION_KIND_GROUP,
    CONVERSATION_KIND_PUBLIC,
    DEFAULT_CONVERSATION_KEY,
    Conversation,
    ConversationMember,
)
from .message import Message
from .user import AuthSession, Credential, User

__all__ = [
    "AuthSession", "Credential", "User",
    "Conversation", "ConversationMember",
    "CONVERSATION_KIND_DIRECT", "CONVERSATION_KIND_GROUP", "CONVERSATION_KIND_PUBLIC",
    "DEFAULT_CONVERSATION_KEY",
    "Message",
]
