"""Typed errors raised by the relay core.

Every service raises one of these; the API layer maps them onto HTTP status
codes and WebSocket close codes without reinterpreting them.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for errors surfaced to clients."""

    status_code: int = 500
    error_code: str = "RELAY_ERROR"
    default_message: str = "Internal relay error"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(RelayError):
    """No session, or the session token is invalid, expired or revoked."""

    status_code = 401
    error_code = "UNAUTHENTICATED"
    default_message = "Could not validate credentials"


class NotAuthorized(RelayError):
    """Authenticated, but forbidden for this resource."""

    status_code = 403
    error_code = "NOT_AUTHORIZED"
    default_message = "Not authorized for this resource"


class InvalidInput(RelayError):
    status_code = 422
    error_code = "INVALID_INPUT"
    default_message = "Invalid input"


class EmptyMessage(InvalidInput):
    error_code = "EMPTY_MESSAGE"
    default_message = "Message text must not be empty"


class NotFound(RelayError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class Unavailable(RelayError):
    """Transient storage or delivery failure; safe for the caller to retry."""

    status_code = 503
    error_code = "UNAVAILABLE"
    default_message = "Service temporarily unavailable"


class AccountExists(RelayError):
    status_code = 409
    error_code = "ACCOUNT_EXISTS"
    default_message = "An account with this email already exists"


class InvalidCredentials(RelayError):
    status_code = 401
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or secret"


__all__ = [
    "RelayError",
    "Unauthenticated",
    "NotAuthorized",
    "InvalidInput",
    "EmptyMessage",
    "NotFound",
    "Unavailable",
    "AccountExists",
    "InvalidCredentials",
]
