"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned for every typed relay error."""

    detail: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Stable machine-readable error code")


class MediaResponse(BaseModel):
    """Location of an uploaded object."""

    url: str = Field(..., description="URL to fetch the object from")
    content_type: str
    size: int
