"""WebSocket message envelope models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from parley_relay.core.errors import RelayError
from parley_relay.models import Message
from parley_relay.schemas.message import MessageResponse


class StreamCommand(BaseModel):
    """Client → Server."""

    type: str  # message.send | ping
    data: dict[str, Any] = {}


class StreamEvent(BaseModel):
    """Server → Client."""

    type: str  # message.created | message.sent | stream.closed | error | pong
    data: dict[str, Any] = {}

    @classmethod
    def message_created(cls, message: Message) -> StreamEvent:
        return cls(
            type="message.created",
            data=MessageResponse.from_message(message).model_dump(mode="json"),
        )

    @classmethod
    def message_sent(cls, message: Message) -> StreamEvent:
        return cls(type="message.sent", data={"conversation_id": message.conversation_id, "id": message.id})

    @classmethod
    def error(cls, err: RelayError) -> StreamEvent:
        return cls(type="error", data={"detail": err.message, "error_code": err.error_code})

    @classmethod
    def closed(cls, reason: str | None) -> StreamEvent:
        return cls(type="stream.closed", data={"reason": reason})
