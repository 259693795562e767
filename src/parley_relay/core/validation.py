"""Input validation shared by the services and the client adapter."""

from __future__ import annotations

import re
from typing import Final

from parley_relay.core.errors import EmptyMessage, InvalidInput

EMAIL_PATTERN: Final = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SECRET_MIN_LENGTH: Final[int] = 8
SECRET_SPECIAL_CHARACTERS: Final[str] = '!@#$%^&*(),.?":{}|<>'
DISPLAY_NAME_MAX_LENGTH: Final[int] = 100


def normalize_message_text(text: str | None, max_length: int) -> str:
    """Return trimmed message text.

    Raises:
        EmptyMessage: if nothing is left after trimming.
        InvalidInput: if the trimmed text is longer than ``max_length``.
    """
    if not isinstance(text, str):
        raise EmptyMessage()
    body = text.strip()
    if not body:
        raise EmptyMessage()
    if len(body) > max_length:
        raise InvalidInput(
            f"Message text exceeds {max_length} characters",
            max_length=max_length,
        )
    return body


def normalize_email(email: str) -> str:
    """Return the canonical (trimmed, lower-cased) form of an email address."""
    candidate = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(candidate):
        raise InvalidInput("Email address is not valid")
    return candidate


def check_secret_strength(secret: str) -> None:
    """Reject secrets that are too weak to register an account with."""
    if not secret:
        raise InvalidInput("Secret cannot be empty")
    if len(secret) < SECRET_MIN_LENGTH:
        raise InvalidInput(f"Secret must be at least {SECRET_MIN_LENGTH} characters long")
    if not re.search(r"[A-Z]", secret):
        raise InvalidInput("Secret must contain at least one uppercase letter")
    if not re.search(r"[a-z]", secret):
        raise InvalidInput("Secret must contain at least one lowercase letter")
    if not re.search(r"[0-9]", secret):
        raise InvalidInput("Secret must contain at least one number")
    if not any(ch in SECRET_SPECIAL_CHARACTERS for ch in secret):
        raise InvalidInput("Secret must contain at least one special character")


def normalize_display_name(name: str) -> str:
    display_name = name.strip() if isinstance(name, str) else ""
    if not display_name:
        raise InvalidInput("Display name cannot be blank")
    if len(display_name) > DISPLAY_NAME_MAX_LENGTH:
        raise InvalidInput(f"Display name exceeds {DISPLAY_NAME_MAX_LENGTH} characters")
    return display_name
