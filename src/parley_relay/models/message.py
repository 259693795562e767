"""Models describing chat messages."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column

from parley_relay.db.session import Base


class Message(Base):
    """Immutable chat message owned by exactly one conversation.

    ``(conversation_id, id)`` is the storage key; ``id`` is assigned by the
    message log from the conversation's sequence counter, never by clients.
    """

    __tablename__ = "message"

    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conversation.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    sender_id: Mapped[bytes] = mapped_column(
        LargeBinary(32),
        ForeignKey("user_profile.user_id"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_ref: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Server-assigned; non-decreasing within a conversation.
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Tombstone marker for soft deletion.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_message_conversation_order", "conversation_id", "created_at", "id"),
    )

    @property
    def deleted(self) -> bool:
        return self.deleted_at is not None
