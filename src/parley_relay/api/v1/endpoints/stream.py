"""Live conversation stream over WebSocket."""

from __future__ import annotations

import logging
from typing import Annotated

import anyio
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from parley_relay.core.context import ServiceContext
from parley_relay.core.errors import InvalidInput, NotAuthorized, NotFound, RelayError, Unauthenticated
from parley_relay.models import Message
from parley_relay.schemas.stream import StreamCommand, StreamEvent
from parley_relay.services.broker import ChannelClosed
from parley_relay.services.client_sync import ClientSyncAdapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["stream"])

WS_CLOSE_UNAUTHENTICATED = 4401
WS_CLOSE_NOT_AUTHORIZED = 4403
WS_CLOSE_NOT_FOUND = 4404
WS_CLOSE_POLICY = 1008
WS_CLOSE_INTERNAL = 1011


def close_code_for(err: RelayError) -> int:
    if isinstance(err, Unauthenticated):
        return WS_CLOSE_UNAUTHENTICATED
    if isinstance(err, NotAuthorized):
        return WS_CLOSE_NOT_AUTHORIZED
    if isinstance(err, NotFound):
        return WS_CLOSE_NOT_FOUND
    if isinstance(err, InvalidInput):
        return WS_CLOSE_POLICY
    return WS_CLOSE_INTERNAL


class WebSocketChannel:
    """Push channel writing ``message.created`` frames to a WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def push(self, message: Message) -> None:
        await self.send(StreamEvent.message_created(message))

    async def send(self, event: StreamEvent) -> None:
        try:
            await self._websocket.send_json(event.model_dump(mode="json"))
        except (WebSocketDisconnect, RuntimeError) as err:
            raise ChannelClosed() from err


async def _handle_commands(
    websocket: WebSocket,
    channel: WebSocketChannel,
    adapter: ClientSyncAdapter,
    conversation_id: int,
) -> None:
    """Serve inbound frames until the client disconnects."""
    while True:
        frame = await websocket.receive()
        if frame["type"] == "websocket.disconnect":
            return
        raw = frame.get("text") or frame.get("bytes")
        try:
            command = StreamCommand.model_validate_json(raw or b"")
        except ValidationError:
            await channel.send(StreamEvent(type="error", data={"detail": "Malformed frame"}))
            continue

        if command.type == "ping":
            await channel.send(StreamEvent(type="pong"))
        elif command.type == "message.send":
            try:
                message = await adapter.send_message(
                    conversation_id,
                    str(command.data.get("text", "")),
                    command.data.get("attachment_ref"),
                )
            except RelayError as err:
                await channel.send(StreamEvent.error(err))
            else:
                await channel.send(StreamEvent.message_sent(message))
        else:
            await channel.send(StreamEvent(type="error", data={"detail": f"Unknown frame type {command.type}"}))


@router.websocket("/{conversation_id}/stream")
async def stream_conversation(
    websocket: WebSocket,
    conversation_id: int,
    token: str | None = None,
    since: Annotated[int | None, Query(ge=0, description="Replay messages after this id")] = None,
) -> None:
    """Replay messages after ``since`` and then push live ones.

    The session token travels as a query parameter. Failures to open the
    feed close the socket with 4401, 4403 or 4404.
    """
    context: ServiceContext = websocket.app.state.context
    await websocket.accept()

    adapter = ClientSyncAdapter(context, token)
    try:
        subscription = adapter.open_conversation(conversation_id, since_id=since)
    except RelayError as err:
        await websocket.close(code=close_code_for(err), reason=err.message)
        return

    channel = WebSocketChannel(websocket)
    client_left = False
    failure: RelayError | None = None

    async def pump(scope: anyio.CancelScope) -> None:
        nonlocal failure
        try:
            await context.broker.deliver(subscription, channel)
        except RelayError as err:
            failure = err
        scope.cancel()

    async def listen(scope: anyio.CancelScope) -> None:
        nonlocal client_left
        try:
            await _handle_commands(websocket, channel, adapter, conversation_id)
        except ChannelClosed:
            logger.debug("Client left conversation %s mid-reply", conversation_id)
        client_left = True
        scope.cancel()

    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(pump, tg.cancel_scope)
            tg.start_soon(listen, tg.cancel_scope)
    finally:
        adapter.close_conversation()

    if client_left:
        return

    close_code = 1000
    if failure is not None:
        logger.warning("Stream on conversation %s failed: %s", conversation_id, failure)
        close_code = close_code_for(failure)
    try:
        await channel.send(StreamEvent.closed(subscription.closed_reason))
        await websocket.close(code=close_code)
    except (ChannelClosed, RuntimeError):
        logger.debug("Socket already closed on conversation %s", conversation_id)
