"""Session token and account secret primitives."""
from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Any

from jose import jwt
from nacl import pwhash
from nacl.exceptions import InvalidkeyError

from parley_relay.core.settings import PasswordHashProfile, Settings
from parley_relay.db.time import utcnow
from parley_relay.utils.hash import encode_id

_HASH_LIMITS: dict[str, tuple[int, int]] = {
    "min": (pwhash.argon2id.OPSLIMIT_MIN, pwhash.argon2id.MEMLIMIT_MIN),
    "interactive": (pwhash.argon2id.OPSLIMIT_INTERACTIVE, pwhash.argon2id.MEMLIMIT_INTERACTIVE),
    "moderate": (pwhash.argon2id.OPSLIMIT_MODERATE, pwhash.argon2id.MEMLIMIT_MODERATE),
    "sensitive": (pwhash.argon2id.OPSLIMIT_SENSITIVE, pwhash.argon2id.MEMLIMIT_SENSITIVE),
}


def new_session_id() -> str:
    """Return a random, URL-safe session identifier."""
    return secrets.token_urlsafe(24)


def create_access_token(subject: bytes | str, session_id: str, settings: Settings) -> str:
    """Create a signed JWT binding ``subject`` to a server-side session."""
    sub = subject if isinstance(subject, str) else encode_id(subject)
    now = utcnow()
    to_encode: dict[str, Any] = {
        "sub": sub,
        "sid": session_id,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    encoded_jwt: str = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str, settings: Settings, *, verify_exp: bool = True) -> dict[str, Any]:
    """Decode and verify a session token.

    Raises:
        jose.JWTError: if the signature, algorithm or expiry checks fail.
    """
    claims: dict[str, Any] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"verify_exp": verify_exp},
    )
    return claims


def hash_secret(secret: str, profile: PasswordHashProfile = "interactive") -> bytes:
    """Hash an account secret with Argon2id."""
    opslimit, memlimit = _HASH_LIMITS[profile]
    return pwhash.argon2id.str(secret.encode("utf-8"), opslimit=opslimit, memlimit=memlimit)


def verify_secret(secret_hash: bytes, secret: str) -> bool:
    """Return True if ``secret`` matches the stored Argon2id hash."""
    try:
        return bool(pwhash.verify(secret_hash, secret.encode("utf-8")))
    except InvalidkeyError:
        return False
