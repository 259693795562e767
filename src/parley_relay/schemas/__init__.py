# src/parley_relay/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import ErrorResponse, MediaResponse
from .conversation import ConversationCreate, ConversationResponse, ParticipantsResponse
from .message import MessageCreate, MessagePage, MessageResponse
from .stream import StreamEvent
from .user import AuthResponse, CredentialsRequest, ProfileUpdateRequest, UserResponse

__all__ = [
    "ErrorResponse", "MediaResponse",
    "ConversationCreate", "ConversationResponse", "ParticipantsResponse",
    "MessageCreate", "MessagePage", "MessageResponse",
    "StreamEvent",
    "AuthResponse", "CredentialsRequest", "ProfileUpdateRequest", "UserResponse",
]
