"""Message-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from parley_relay.db.time import as_utc
from parley_relay.models import Message
from parley_relay.utils.hash import encode_id


class MessageCreate(BaseModel):
    """Schema for sending a message to a conversation."""

    text: str = Field(..., description="Message text; trimmed server-side")
    attachment_ref: str | None = Field(None, description="Optional object store URL")


class MessageResponse(BaseModel):
    """Message as stored in the log."""

    conversation_id: int
    id: int = Field(..., description="Per-conversation sequence number")
    sender_id: str
    text: str
    attachment_ref: str | None = None
    created_at: datetime
    deleted: bool = False

    @classmethod
    def from_message(cls, message: Message) -> MessageResponse:
        return cls(
            conversation_id=message.conversation_id,
            id=message.id,
            sender_id=encode_id(message.sender_id),
            text=message.text,
            attachment_ref=message.attachment_ref,
            created_at=as_utc(message.created_at),
            deleted=message.deleted,
        )


class MessagePage(BaseModel):
    """Slice of a conversation's log, with the cursor for the next slice."""

    items: list[MessageResponse]
    next_after: int | None = Field(
        None,
        description="Pass as ``after`` to continue; null when the page was short",
    )
