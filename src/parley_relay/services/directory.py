"""Conversation directory: conversations, membership and user profiles."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from parley_relay.core.errors import InvalidInput, NotAuthorized, NotFound
from parley_relay.core.validation import normalize_display_name
from parley_relay.models import (
    CONVERSATION_KIND_DIRECT,
    CONVERSATION_KIND_GROUP,
    CONVERSATION_KIND_PUBLIC,
    DEFAULT_CONVERSATION_KEY,
    Conversation,
    ConversationMember,
    User,
)
from parley_relay.utils.hash import blake3_hexdigest, encode_id

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"display_name", "avatar_ref"})


def direct_conversation_key(participant_ids: Iterable[bytes]) -> str:
    """Return the canonical key addressing a two-party conversation.

    The key depends only on the set of participants, so either side creating
    the chat resolves to the same conversation.
    """
    return blake3_hexdigest(b"".join(sorted(participant_ids)))


class ConversationDirectory:
    """Maps conversation ids to participant sets and serves user profiles."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # Conversations ---------------------------------------------------------

    def get_or_create_default_conversation(self) -> Conversation:
        """Return the singleton public room, creating it on first use."""
        with self._session_factory() as db:
            existing = self._load_by_key(db, DEFAULT_CONVERSATION_KEY)
            if existing is not None:
                return existing
            db.add(Conversation(kind=CONVERSATION_KIND_PUBLIC, participant_key=DEFAULT_CONVERSATION_KEY))
            try:
                db.commit()
            except IntegrityError:
                # Lost a creation race; the winner's row is the default room.
                db.rollback()
            conversation = self._load_by_key(db, DEFAULT_CONVERSATION_KEY)
            if conversation is None:  # pragma: no cover - unique key guarantees a row
                raise NotFound("Default conversation could not be created")
            logger.info("Default conversation is %s", conversation.id)
            return conversation

    def create_conversation(
        self,
        participant_ids: Iterable[bytes],
        title: str | None = None,
    ) -> Conversation:
        """Create a conversation for the given participants.

        Two participants resolve to a single direct conversation regardless of
        who asks first. Three or more always create a new group.
        """
        members = sorted(set(participant_ids))
        if len(members) < 2:
            raise InvalidInput("A conversation needs at least two distinct participants")

        with self._session_factory() as db:
            known = set(db.scalars(select(User.user_id).where(User.user_id.in_(members))))
            missing = [encode_id(uid) for uid in members if uid not in known]
            if missing:
                raise NotFound("Unknown participant", participants=missing)

            if len(members) == 2:
                key = direct_conversation_key(members)
                existing = self._load_by_key(db, key)
                if existing is not None:
                    return existing
                conversation = Conversation(kind=CONVERSATION_KIND_DIRECT, participant_key=key, title=title)
            else:
                conversation = Conversation(kind=CONVERSATION_KIND_GROUP, title=title)

            conversation.members = [ConversationMember(user_id=uid) for uid in members]
            db.add(conversation)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if conversation.kind != CONVERSATION_KIND_DIRECT:
                    raise
                existing = self._load_by_key(db, key)
                if existing is None:  # pragma: no cover - unique key guarantees a row
                    raise
                return existing

            logger.info(
                "Created %s conversation %s with %d participants",
                conversation.kind,
                conversation.id,
                len(members),
            )
            return self._load(db, conversation.id) or conversation

    def get_conversation(self, conversation_id: int) -> Conversation:
        with self._session_factory() as db:
            conversation = self._load(db, conversation_id)
        if conversation is None:
            raise NotFound("Conversation not found", conversation_id=conversation_id)
        return conversation

    def list_participants(self, conversation_id: int) -> list[bytes]:
        """Return the canonical participant list of a conversation."""
        return self.get_conversation(conversation_id).participant_ids

    def is_participant(self, conversation_id: int, user_id: bytes) -> bool:
        with self._session_factory() as db:
            return db.get(ConversationMember, (conversation_id, user_id)) is not None

    def require_participant(self, conversation_id: int, user_id: bytes) -> Conversation:
        """Return the conversation if ``user_id`` is a member of it.

        Raises:
            NotFound: if the conversation does not exist.
            NotAuthorized: if the user is not a participant.
        """
        conversation = self.get_conversation(conversation_id)
        if user_id not in conversation.participant_ids:
            raise NotAuthorized("Not a participant of this conversation", conversation_id=conversation_id)
        return conversation

    def list_conversations(self, user_id: bytes) -> list[Conversation]:
        """Return the conversations ``user_id`` participates in, most recent first."""
        with self._session_factory() as db:
            stmt = (
                select(Conversation)
                .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
                .where(ConversationMember.user_id == user_id)
                .options(selectinload(Conversation.members))
                .order_by(
                    func.coalesce(Conversation.last_message_at, Conversation.created_at).desc(),
                    Conversation.id.desc(),
                )
            )
            return list(db.scalars(stmt))

    # Users -----------------------------------------------------------------

    def ensure_user(self, user_id: bytes) -> User:
        """Create a profile for ``user_id`` if needed and join the public room."""
        with self._session_factory() as db:
            user = self.stage_user(db, user_id)
            db.commit()
            return user

    def stage_user(self, db: Session, user_id: bytes) -> User:
        """Add the profile and public-room membership to ``db`` without committing.

        The caller owns the transaction, so the user only exists if it commits.
        """
        default = self.get_or_create_default_conversation()
        user = db.get(User, user_id)
        if user is None:
            user = User(user_id=user_id, display_name=encode_id(user_id))
            db.add(user)
        if db.get(ConversationMember, (default.id, user_id)) is None:
            db.add(ConversationMember(conversation_id=default.id, user_id=user_id))
        return user

    def get_profile(self, user_id: bytes) -> User:
        with self._session_factory() as db:
            user = db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def update_profile(self, caller_id: bytes, user_id: bytes, fields: Mapping[str, Any]) -> User:
        """Apply a partial profile update on behalf of ``caller_id``.

        Only ``display_name`` and ``avatar_ref`` may change; ``None`` leaves a
        field as it is.
        """
        if caller_id != user_id:
            raise NotAuthorized("Profiles can only be updated by their owner")
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise InvalidInput("Unknown profile fields", fields=sorted(unknown))

        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                user = User(user_id=user_id, display_name=encode_id(user_id))
                db.add(user)
            display_name = fields.get("display_name")
            if display_name is not None:
                user.display_name = normalize_display_name(display_name)
            avatar_ref = fields.get("avatar_ref")
            if avatar_ref is not None:
                user.avatar_ref = avatar_ref.strip() or None
            db.commit()
            return user

    def list_users(
        self,
        exclude: bytes | None = None,
        search: str | None = None,
        limit: int = 100,
    ) -> list[User]:
        """List known users, optionally filtered by a display-name substring."""
        with self._session_factory() as db:
            stmt = select(User)
            if exclude is not None:
                stmt = stmt.where(User.user_id != exclude)
            term = (search or "").strip()
            if term:
                stmt = stmt.where(User.display_name.icontains(term, autoescape=True))
            stmt = stmt.order_by(User.display_name, User.user_id).limit(limit)
            return list(db.scalars(stmt))

    # Helpers ---------------------------------------------------------------

    @staticmethod
    def _load(db: Session, conversation_id: int) -> Conversation | None:
        stmt = (
            select(Conversation)
            .where(Conversation.id == conversation_id)
            .options(selectinload(Conversation.members))
        )
        return db.scalars(stmt).first()

    @staticmethod
    def _load_by_key(db: Session, key: str) -> Conversation | None:
        stmt = (
            select(Conversation)
            .where(Conversation.participant_key == key)
            .options(selectinload(Conversation.members))
        )
        return db.scalars(stmt).first()
