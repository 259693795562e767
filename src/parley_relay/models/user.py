# src/parley_relay/models/user.py
"""SQLAlchemy models for user identities, credentials and sessions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from parley_relay.db.session import Base
from parley_relay.db.time import utcnow


class User(Base):
    """Profile record for an identity issued by the identity store."""

    __tablename__ = "user_profile"

    user_id: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Credential(Base):
    """Email and Argon2id secret hash backing a registered identity."""

    __tablename__ = "credential"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    user_id: Mapped[bytes] = mapped_column(
        LargeBinary(32),
        ForeignKey("user_profile.user_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    secret_hash: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class AuthSession(Base):
    """Server-side record of an issued session token.

    The token's ``sid`` claim points here; sign-out stamps ``revoked_at``.
    """

    __tablename__ = "auth_session"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[bytes] = mapped_column(
        LargeBinary(32),
        ForeignKey("user_profile.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
