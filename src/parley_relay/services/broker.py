"""Live fan-out of committed messages to conversation subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Iterator
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from parley_relay.core.errors import Unavailable
from parley_relay.models import Message
from parley_relay.services.message_log import MessageLog

logger = logging.getLogger(__name__)

CLOSE_UNSUBSCRIBED = "unsubscribed"
CLOSE_OVERFLOW = "overflow"
CLOSE_TIMEOUT = "timeout"
CLOSE_DISCONNECTED = "disconnected"
CLOSE_SHUTDOWN = "shutdown"
CLOSE_STORAGE = "storage"


class ChannelClosed(Exception):
    """Raised by a push channel whose client has gone away."""


class PushChannel(Protocol):
    """Transport able to deliver an ordered sequence of messages to one client."""

    async def push(self, message: Message) -> None: ...


class Subscription:
    """One live listener on a conversation.

    Messages come from the replay iterator first and then from the live
    queue. ``last_id`` is the watermark of the last delivered message; any
    message at or below it is skipped, which makes the replay/live seam
    gap-free and duplicate-free.
    """

    def __init__(
        self,
        conversation_id: int,
        since_id: int | None,
        queue_size: int,
        on_close: Callable[[Subscription], None] | None = None,
    ) -> None:
        self.conversation_id = conversation_id
        self.last_id = since_id or 0
        self.closed = False
        self.closed_reason: str | None = None
        self._queue: asyncio.Queue[Message | None] = asyncio.Queue(maxsize=queue_size)
        self._replay: Iterator[Message] | None = None
        self._on_close = on_close

    def __repr__(self) -> str:
        return (
            f"Subscription(conversation_id={self.conversation_id}, "
            f"last_id={self.last_id}, closed={self.closed})"
        )

    def attach_replay(self, replay: Iterator[Message]) -> None:
        self._replay = replay

    def offer(self, message: Message) -> bool:
        """Queue a live message; return False if the buffer is full."""
        if self.closed:
            return True
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> Message | None:
        """Return the next message in order, or None once closed."""
        while not self.closed:
            message = self._next_replayed()
            if message is None:
                message = await self._queue.get()
                if message is None or self.closed:
                    return None
            if message.id <= self.last_id:
                continue
            self.last_id = message.id
            return message
        return None

    def _next_replayed(self) -> Message | None:
        if self._replay is None:
            return None
        try:
            return next(self._replay)
        except StopIteration:
            self._replay = None
            return None
        except SQLAlchemyError as exc:
            self.close(CLOSE_STORAGE)
            raise Unavailable("Could not replay conversation history") from exc

    def close(self, reason: str = CLOSE_UNSUBSCRIBED) -> None:
        """Stop the subscription and drop anything still buffered."""
        if self.closed:
            return
        self.closed = True
        self.closed_reason = reason
        self._replay = None
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        # Wake a consumer blocked in get().
        self._queue.put_nowait(None)
        if self._on_close is not None:
            self._on_close(self)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Message:
        message = await self.get()
        if message is None:
            raise StopAsyncIteration
        return message


class SubscriptionBroker:
    """Registry of live subscriptions, fed by message log commits."""

    def __init__(
        self,
        message_log: MessageLog,
        *,
        queue_size: int = 1000,
        push_timeout: float = 10.0,
    ) -> None:
        self._log = message_log
        self._queue_size = queue_size
        self._push_timeout = push_timeout
        self._subscriptions: defaultdict[int, set[Subscription]] = defaultdict(set)
        message_log.add_commit_listener(self.publish)

    def subscribe(self, conversation_id: int, since_id: int | None = None) -> Subscription:
        """Open a live feed replaying everything after ``since_id`` first.

        The subscription is registered before the replay range is opened, so
        a message committed in between is either replayed or queued live and
        the watermark drops the second copy.
        """
        replay = self._log.read(conversation_id, after_id=since_id)
        subscription = Subscription(conversation_id, since_id, self._queue_size, on_close=self._forget)
        self._subscriptions[conversation_id].add(subscription)
        subscription.attach_replay(iter(replay))
        logger.debug("Subscribed to conversation %s after %s", conversation_id, since_id)
        return subscription

    def unsubscribe(self, subscription: Subscription, reason: str = CLOSE_UNSUBSCRIBED) -> None:
        """Tear a subscription down; safe to call repeatedly."""
        self._forget(subscription)
        if not subscription.closed:
            subscription.close(reason)
            logger.info(
                "Closed subscription on conversation %s (%s)",
                subscription.conversation_id,
                reason,
            )

    def _forget(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.conversation_id)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscriptions[subscription.conversation_id]

    def publish(self, message: Message) -> None:
        """Offer a committed message to every live subscriber of its conversation."""
        subscribers = self._subscriptions.get(message.conversation_id)
        if not subscribers:
            return
        for subscription in list(subscribers):
            if not subscription.offer(message):
                logger.warning(
                    "Subscriber on conversation %s fell behind; dropping it",
                    message.conversation_id,
                )
                self.unsubscribe(subscription, CLOSE_OVERFLOW)

    async def deliver(self, subscription: Subscription, channel: PushChannel) -> None:
        """Pump messages from ``subscription`` into ``channel`` until it ends.

        A push that exceeds the push timeout or hits a closed channel tears
        the subscription down. The caller is expected to resubscribe with its
        last seen id.
        """
        try:
            async for message in subscription:
                if subscription.closed:
                    break
                try:
                    async with asyncio.timeout(self._push_timeout):
                        await channel.push(message)
                except TimeoutError:
                    logger.info("Push timed out on conversation %s", subscription.conversation_id)
                    self.unsubscribe(subscription, CLOSE_TIMEOUT)
                    break
                except ChannelClosed:
                    self.unsubscribe(subscription, CLOSE_DISCONNECTED)
                    break
        finally:
            self.unsubscribe(subscription)

    def subscriber_count(self, conversation_id: int) -> int:
        return len(self._subscriptions.get(conversation_id, ()))

    def close_all(self) -> None:
        """Close every subscription, e.g. at shutdown."""
        for subscribers in list(self._subscriptions.values()):
            for subscription in list(subscribers):
                self.unsubscribe(subscription, CLOSE_SHUTDOWN)
        self._subscriptions.clear()
