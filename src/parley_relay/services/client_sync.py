"""Client-facing boundary translating user actions into core operations."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from parley_relay.models import Conversation, Message, User
from parley_relay.services.broker import Subscription

if TYPE_CHECKING:
    from parley_relay.core.context import ServiceContext

logger = logging.getLogger(__name__)


def _trimmed(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class ClientSyncAdapter:
    """Per-session facade over the identity store, log, broker and directory.

    Each call validates the session token before doing anything else and
    lets the typed errors of the lower components through untouched. The
    only state kept is the live subscription of the open conversation.
    """

    def __init__(self, context: ServiceContext, session_token: str | None) -> None:
        self._context = context
        self._token = session_token
        self._subscription: Subscription | None = None

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    def current_user_id(self) -> bytes:
        return self._context.identity.validate_session(self._token)

    # Messages --------------------------------------------------------------

    async def send_message(
        self,
        conversation_id: int,
        text: str,
        attachment_ref: str | None = None,
    ) -> Message:
        user_id = self.current_user_id()
        return await self._context.message_log.append(
            conversation_id,
            user_id,
            _trimmed(text),
            _trimmed(attachment_ref) or None,
        )

    def read_messages(
        self,
        conversation_id: int,
        after_id: int | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        user_id = self.current_user_id()
        self._context.directory.require_participant(conversation_id, user_id)
        return list(self._context.message_log.read(conversation_id, after_id=after_id, limit=limit))

    def delete_message(self, conversation_id: int, message_id: int, hard: bool = False) -> None:
        user_id = self.current_user_id()
        self._context.message_log.delete(conversation_id, message_id, user_id, hard=hard)

    # Live feed -------------------------------------------------------------

    def open_conversation(self, conversation_id: int, since_id: int | None = None) -> Subscription:
        """Subscribe to a conversation, replacing any previously open feed."""
        user_id = self.current_user_id()
        self._context.directory.require_participant(conversation_id, user_id)
        self.close_conversation()
        self._subscription = self._context.broker.subscribe(conversation_id, since_id=since_id)
        return self._subscription

    def close_conversation(self) -> None:
        """Drop the live feed. Works even after the session has ended."""
        if self._subscription is not None:
            self._context.broker.unsubscribe(self._subscription)
            self._subscription = None

    # Profiles and contacts ---------------------------------------------------

    def get_profile(self, user_id: bytes | None = None) -> User:
        caller = self.current_user_id()
        return self._context.directory.get_profile(user_id or caller)

    def update_profile(self, fields: Mapping[str, Any], user_id: bytes | None = None) -> User:
        caller = self.current_user_id()
        cleaned = {name: _trimmed(value) for name, value in fields.items()}
        return self._context.directory.update_profile(caller, user_id or caller, cleaned)

    def list_contacts(self, search: str | None = None, limit: int = 100) -> list[User]:
        caller = self.current_user_id()
        return self._context.directory.list_users(exclude=caller, search=_trimmed(search), limit=limit)

    # Conversations -----------------------------------------------------------

    def start_chat(self, participant_ids: Iterable[bytes], title: str | None = None) -> Conversation:
        """Open a conversation between the caller and ``participant_ids``."""
        caller = self.current_user_id()
        members = set(participant_ids) | {caller}
        return self._context.directory.create_conversation(members, title=_trimmed(title) or None)

    def list_conversations(self) -> list[Conversation]:
        return self._context.directory.list_conversations(self.current_user_id())

    def default_conversation(self) -> Conversation:
        self.current_user_id()
        return self._context.directory.get_or_create_default_conversation()

    def list_participants(self, conversation_id: int) -> list[bytes]:
        user_id = self.current_user_id()
        return self._context.directory.require_participant(conversation_id, user_id).participant_ids

    # Attachments -------------------------------------------------------------

    def upload_attachment(self, data: bytes, content_type: str) -> str:
        user_id = self.current_user_id()
        return self._context.object_store.put(data, _trimmed(content_type), owner=user_id)

    def fetch_attachment(self, url: str) -> bytes:
        self.current_user_id()
        return self._context.object_store.get(url)

    def delete_attachment(self, url: str) -> None:
        user_id = self.current_user_id()
        self._context.object_store.delete(url, requester=user_id)

    # Session -----------------------------------------------------------------

    def sign_out(self) -> None:
        self.close_conversation()
        if self._token:
            self._context.identity.sign_out(self._token)
            logger.debug("Client session closed")
