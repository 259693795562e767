# src/parley_relay/utils/hash.py
"""BLAKE3 hashing and identifier encoding helpers."""

from __future__ import annotations

import base64
import binascii
import secrets

from blake3 import blake3

USER_ID_BYTES = 32


def blake3_digest(data: bytes) -> bytes:
    """Return the byte digest of the supplied data."""
    return blake3(data).digest()


def blake3_hexdigest(data: bytes) -> str:
    """Return the hexadecimal digest of the supplied data."""
    return blake3(data).hexdigest()


def new_user_id() -> bytes:
    """Return a fresh, collision-resistant 32-byte user identifier."""
    return blake3_digest(secrets.token_bytes(USER_ID_BYTES))


def encode_id(user_id: bytes) -> str:
    """Encode an identifier as URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(user_id).decode().rstrip("=")


def decode_id(subject: str) -> bytes:
    """Decode a URL-safe base64 identifier produced by :func:`encode_id`.

    Raises:
        ValueError: if ``subject`` is not valid base64 or has the wrong length.
    """
    padding = "=" * (-len(subject) % 4)
    try:
        raw = base64.b64decode(subject + padding, altchars=b"-_", validate=True)
    except binascii.Error as err:
        raise ValueError("Invalid identifier encoding") from err
    if len(raw) != USER_ID_BYTES:
        raise ValueError("Invalid identifier length")
    return raw
