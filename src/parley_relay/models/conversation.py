"""SQLAlchemy models for conversations and their membership."""

from __future__ import annotations

from datetime import datetime
from typing import Final

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from parley_relay.db.session import Base
from parley_relay.db.time import utcnow

CONVERSATION_KIND_PUBLIC: Final[str] = "public"
CONVERSATION_KIND_DIRECT: Final[str] = "direct"
CONVERSATION_KIND_GROUP: Final[str] = "group"

# participant_key of the singleton public room.
DEFAULT_CONVERSATION_KEY: Final[str] = "public"


class Conversation(Base):
    """Addressable message thread.

    ``last_message_id`` is the per-conversation sequence counter; the message
    log increments it in the same transaction that inserts a message.
    """

    __tablename__ = "conversation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    # Canonical addressing key: "public" for the default room, a digest of the
    # sorted participant ids for direct chats, NULL for groups.
    participant_key: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    members: Mapped[list[ConversationMember]] = relationship(
        "ConversationMember",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def participant_ids(self) -> list[bytes]:
        """Return member ids in canonical (sorted) order."""
        return sorted(member.user_id for member in self.members)


class ConversationMember(Base):
    """Join table mapping users into conversations."""

    __tablename__ = "conversation_member"

    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conversation.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[bytes] = mapped_column(
        LargeBinary(32),
        ForeignKey("user_profile.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    conversation: Mapped[Conversation] = relationship("Conversation", back_populates="members")
