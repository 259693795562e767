# src/parley_relay/api/v1/endpoints/conversations.py
"""Conversation and message endpoints for the Parley Relay API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from parley_relay.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    ParticipantsResponse,
)
from parley_relay.schemas.message import MessageCreate, MessagePage, MessageResponse
from parley_relay.utils.hash import encode_id

from ..dependencies import AdapterDep, ContextDep, parse_user_id

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(adapter: AdapterDep) -> list[ConversationResponse]:
    """List the caller's conversations, most recently active first."""
    return [ConversationResponse.from_conversation(c) for c in adapter.list_conversations()]


# Declared before "/{conversation_id}" routes so "default" is not parsed as an id.
@router.get("/default", response_model=ConversationResponse)
async def get_default_conversation(adapter: AdapterDep) -> ConversationResponse:
    """Return the public room every user belongs to."""
    return ConversationResponse.from_conversation(adapter.default_conversation())


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def start_chat(payload: ConversationCreate, adapter: AdapterDep) -> ConversationResponse:
    """Start (or resume) a chat between the caller and the given users.

    A two-party chat that already exists is returned instead of duplicated.
    """
    participants = [parse_user_id(uid) for uid in payload.participant_ids]
    conversation = adapter.start_chat(participants, title=payload.title)
    return ConversationResponse.from_conversation(conversation)


@router.get("/{conversation_id}/participants", response_model=ParticipantsResponse)
async def list_participants(conversation_id: int, adapter: AdapterDep) -> ParticipantsResponse:
    participant_ids = adapter.list_participants(conversation_id)
    return ParticipantsResponse(
        conversation_id=conversation_id,
        participant_ids=[encode_id(uid) for uid in participant_ids],
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: int,
    payload: MessageCreate,
    adapter: AdapterDep,
) -> MessageResponse:
    """Append a message to a conversation."""
    message = await adapter.send_message(conversation_id, payload.text, payload.attachment_ref)
    return MessageResponse.from_message(message)


@router.get("/{conversation_id}/messages", response_model=MessagePage)
async def read_messages(
    conversation_id: int,
    adapter: AdapterDep,
    context: ContextDep,
    after: Annotated[int | None, Query(ge=0, description="Return messages after this id")] = None,
    limit: Annotated[int | None, Query(ge=1, description="Page size")] = None,
) -> MessagePage:
    """Read a page of the conversation log in canonical order."""
    page_size = min(limit or context.settings.read_page_max, context.settings.read_page_max)
    messages = adapter.read_messages(conversation_id, after_id=after, limit=page_size)
    items = [MessageResponse.from_message(m) for m in messages]
    next_after = items[-1].id if len(items) == page_size else None
    return MessagePage(items=items, next_after=next_after)


@router.delete(
    "/{conversation_id}/messages/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_message(
    conversation_id: int,
    message_id: int,
    adapter: AdapterDep,
    hard: bool = False,
) -> Response:
    """Delete one of the caller's own messages (tombstone unless ``hard``)."""
    adapter.delete_message(conversation_id, message_id, hard=hard)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
