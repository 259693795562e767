# src/parley_relay/schemas/user.py
"""User, profile and authentication Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from parley_relay.db.time import as_utc
from parley_relay.models import User
from parley_relay.utils.hash import encode_id


class CredentialsRequest(BaseModel):
    """Email and secret used to register or sign in."""

    email: str = Field(..., description="Account email address")
    secret: str = Field(..., description="Account secret (password)")


class AuthResponse(BaseModel):
    """Session issued by the identity store."""

    access_token: str = Field(..., description="Bearer token for subsequent requests")
    token_type: str = Field(default="bearer")
    user_id: str = Field(..., description="URL-safe base64 user identifier")
    created: bool = Field(default=False, description="True when a new identity was issued")

    @classmethod
    def build(cls, user_id: bytes, token: str, created: bool = False) -> AuthResponse:
        return cls(access_token=token, user_id=encode_id(user_id), created=created)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted or null fields stay unchanged."""

    display_name: str | None = Field(default=None, description="New display name")
    avatar_ref: str | None = Field(default=None, description="Object store URL of the avatar")

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class UserResponse(BaseModel):
    """Public profile of a user."""

    user_id: str
    display_name: str
    avatar_ref: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            user_id=encode_id(user.user_id),
            display_name=user.display_name,
            avatar_ref=user.avatar_ref,
            created_at=as_utc(user.created_at),
        )
