"""Append-only, per-conversation ordered message storage."""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Callable, Iterator

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from parley_relay.core.errors import InvalidInput, NotAuthorized, NotFound, RelayError, Unavailable
from parley_relay.core.validation import normalize_message_text
from parley_relay.db.time import as_utc, utcnow
from parley_relay.models import Conversation, ConversationMember, Message

logger = logging.getLogger(__name__)

CommitListener = Callable[[Message], None]


class MessageRange:
    """Lazy, finite view over a conversation's messages.

    Every iteration starts a fresh keyset scan from ``after_id``, so the same
    range can be consumed more than once and yields the same prefix each time.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        conversation_id: int,
        after_id: int,
        limit: int | None,
        batch_size: int,
    ) -> None:
        self.conversation_id = conversation_id
        self.after_id = after_id
        self.limit = limit
        self._session_factory = session_factory
        self._batch_size = batch_size

    def __iter__(self) -> Iterator[Message]:
        cursor = self.after_id
        remaining = self.limit
        while remaining is None or remaining > 0:
            batch = self._batch_size if remaining is None else min(self._batch_size, remaining)
            with self._session_factory() as db:
                stmt = (
                    select(Message)
                    .where(Message.conversation_id == self.conversation_id, Message.id > cursor)
                    .order_by(Message.created_at, Message.id)
                    .limit(batch)
                )
                rows = list(db.scalars(stmt))
            yield from rows
            if len(rows) < batch:
                return
            cursor = rows[-1].id
            if remaining is not None:
                remaining -= len(rows)


class MessageLog:
    """Single writer path and source of truth for message order.

    Appends to one conversation are serialized by a per-conversation lock and
    assign ids from the conversation's sequence counter inside the same
    transaction as the insert. Commit listeners run only after the commit.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        write_timeout: float = 5.0,
        read_batch_size: int = 200,
        max_length: int = 500,
    ) -> None:
        self._session_factory = session_factory
        self._write_timeout = write_timeout
        self._read_batch_size = read_batch_size
        self._max_length = max_length
        # Entries vanish once no append holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()
        self._listeners: list[CommitListener] = []

    def add_commit_listener(self, listener: CommitListener) -> None:
        """Register a callable invoked with every committed message."""
        self._listeners.append(listener)

    def _lock_for(self, conversation_id: int) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    async def append(
        self,
        conversation_id: int,
        sender_id: bytes,
        text: str,
        attachment_ref: str | None = None,
    ) -> Message:
        """Durably append a message and return it with its assigned id.

        Raises:
            EmptyMessage: if ``text`` is blank after trimming.
            InvalidInput: if ``text`` is too long.
            NotFound: if the conversation does not exist.
            NotAuthorized: if the sender is not a participant.
            Unavailable: if storage fails or the write exceeds its time bound.
                Nothing is stored in that case.
        """
        body = normalize_message_text(text, self._max_length)
        deadline = time.monotonic() + self._write_timeout
        lock = self._lock_for(conversation_id)
        try:
            async with asyncio.timeout(self._write_timeout):
                await lock.acquire()
        except TimeoutError as exc:
            logger.warning("Timed out waiting to append to conversation %s", conversation_id)
            raise Unavailable("Message write timed out", conversation_id=conversation_id) from exc

        try:
            message = self._commit(conversation_id, sender_id, body, attachment_ref, deadline)
            logger.debug("Appended message %s to conversation %s", message.id, conversation_id)
            self._notify(message)
        finally:
            lock.release()
        return message

    def _commit(
        self,
        conversation_id: int,
        sender_id: bytes,
        body: str,
        attachment_ref: str | None,
        deadline: float,
    ) -> Message:
        with self._session_factory() as db:
            try:
                conversation = db.get(Conversation, conversation_id)
                if conversation is None:
                    raise NotFound("Conversation not found", conversation_id=conversation_id)
                if db.get(ConversationMember, (conversation_id, sender_id)) is None:
                    raise NotAuthorized(
                        "Sender is not a participant of this conversation",
                        conversation_id=conversation_id,
                    )

                db.execute(
                    update(Conversation)
                    .where(Conversation.id == conversation_id)
                    .values(last_message_id=Conversation.last_message_id + 1)
                    .execution_options(synchronize_session=False)
                )
                db.refresh(conversation)

                created_at = utcnow()
                previous = as_utc(conversation.last_message_at)
                if previous is not None and previous > created_at:
                    created_at = previous

                message = Message(
                    conversation_id=conversation_id,
                    id=conversation.last_message_id,
                    sender_id=sender_id,
                    text=body,
                    attachment_ref=attachment_ref,
                    created_at=created_at,
                )
                conversation.last_message_at = created_at
                db.add(message)
                db.flush()

                if time.monotonic() > deadline:
                    raise Unavailable("Message write timed out", conversation_id=conversation_id)
                db.commit()
            except RelayError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning("Storage error appending to conversation %s: %s", conversation_id, exc)
                raise Unavailable("Message storage unavailable", conversation_id=conversation_id) from exc
        return message

    def _notify(self, message: Message) -> None:
        for listener in self._listeners:
            try:
                listener(message)
            except Exception:
                # Delivery problems belong to subscribers, never to the sender.
                logger.exception("Commit listener failed for message %s", message.id)

    def read(
        self,
        conversation_id: int,
        after_id: int | None = None,
        limit: int | None = None,
    ) -> MessageRange:
        """Return the messages after ``after_id`` in canonical order.

        The conversation is checked eagerly; rows are fetched lazily in pages.
        Soft-deleted messages are included as tombstones.
        """
        if limit is not None and limit < 0:
            raise InvalidInput("Limit must not be negative")
        if after_id is not None and after_id < 0:
            raise InvalidInput("after_id must not be negative")
        self._require_conversation(conversation_id)
        return MessageRange(
            self._session_factory,
            conversation_id,
            after_id or 0,
            limit,
            self._read_batch_size,
        )

    def latest_id(self, conversation_id: int) -> int:
        """Return the last id assigned in a conversation, 0 if none yet."""
        return self._require_conversation(conversation_id).last_message_id

    def delete(
        self,
        conversation_id: int,
        message_id: int,
        requester_id: bytes,
        hard: bool = False,
    ) -> None:
        """Tombstone (or with ``hard`` remove) a message on behalf of its sender."""
        with self._session_factory() as db:
            message = db.get(Message, (conversation_id, message_id))
            if message is None:
                raise NotFound("Message not found", conversation_id=conversation_id, message_id=message_id)
            if message.sender_id != requester_id:
                raise NotAuthorized("Only the sender may delete a message")
            if hard:
                db.delete(message)
            elif message.deleted_at is None:
                message.deleted_at = utcnow()
                message.text = ""
            try:
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning("Storage error deleting message %s/%s: %s", conversation_id, message_id, exc)
                raise Unavailable("Message storage unavailable") from exc
        logger.info(
            "%s message %s in conversation %s",
            "Removed" if hard else "Tombstoned",
            message_id,
            conversation_id,
        )

    def _require_conversation(self, conversation_id: int) -> Conversation:
        with self._session_factory() as db:
            conversation = db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFound("Conversation not found", conversation_id=conversation_id)
        return conversation
