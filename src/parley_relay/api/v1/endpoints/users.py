"""User profile and contact endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from parley_relay.schemas.user import ProfileUpdateRequest, UserResponse

from ..dependencies import AdapterDep, parse_user_id

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/contacts", response_model=list[UserResponse])
async def list_contacts(
    adapter: AdapterDep,
    search: Annotated[str | None, Query(max_length=100, description="Display-name filter")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[UserResponse]:
    """List other users, optionally filtered by display name."""
    return [UserResponse.from_user(user) for user in adapter.list_contacts(search=search, limit=limit)]


@router.get("/me/profile", response_model=UserResponse)
async def get_my_profile(adapter: AdapterDep) -> UserResponse:
    return UserResponse.from_user(adapter.get_profile())


@router.patch("/me/profile", response_model=UserResponse)
async def update_my_profile(payload: ProfileUpdateRequest, adapter: AdapterDep) -> UserResponse:
    """Update the caller's profile; only supplied fields change."""
    return UserResponse.from_user(adapter.update_profile(payload.to_fields()))


@router.get("/{user_id}/profile", response_model=UserResponse)
async def get_user_profile(user_id: str, adapter: AdapterDep) -> UserResponse:
    """Return any user's public profile.

    Input is URL-safe base64 of the user id.
    """
    return UserResponse.from_user(adapter.get_profile(parse_user_id(user_id)))
