"""Conversation-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from parley_relay.db.time import as_utc
from parley_relay.models import Conversation
from parley_relay.utils.hash import encode_id


class ConversationCreate(BaseModel):
    """Schema for starting a chat with other users."""

    participant_ids: list[str] = Field(
        ...,
        min_length=1,
        description="Encoded ids of the other participants; the caller is added automatically",
    )
    title: str | None = Field(None, max_length=100, description="Optional label for group chats")


class ConversationResponse(BaseModel):
    """Conversation summary."""

    id: int
    kind: str
    title: str | None = None
    participant_ids: list[str]
    last_message_id: int
    last_message_at: datetime | None = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> ConversationResponse:
        return cls(
            id=conversation.id,
            kind=conversation.kind,
            title=conversation.title,
            participant_ids=[encode_id(uid) for uid in conversation.participant_ids],
            last_message_id=conversation.last_message_id,
            last_message_at=as_utc(conversation.last_message_at),
        )


class ParticipantsResponse(BaseModel):
    conversation_id: int
    participant_ids: list[str]
