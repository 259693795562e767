"""Identity store: issues anonymous and registered identities and sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from parley_relay.core.errors import AccountExists, InvalidCredentials, InvalidInput, Unauthenticated
from parley_relay.core.security import (
    create_access_token,
    decode_access_token,
    hash_secret,
    new_session_id,
    verify_secret,
)
from parley_relay.core.settings import Settings
from parley_relay.core.validation import check_secret_strength, normalize_email
from parley_relay.db.time import utcnow
from parley_relay.models import AuthSession, Credential
from parley_relay.services.directory import ConversationDirectory
from parley_relay.utils.hash import decode_id, new_user_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Email and secret supplied by a registered user."""

    email: str
    secret: str


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful authentication."""

    user_id: bytes
    session_token: str
    created: bool = False


class IdentityStore:
    """Maps opaque session tokens to stable user identifiers."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        directory: ConversationDirectory,
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._directory = directory
        self._settings = settings
        self._dummy_secret_hash: bytes | None = None

    def authenticate(self, credentials: Credentials | None = None) -> AuthResult:
        """Sign in with ``credentials``, or issue a new anonymous identity.

        Raises:
            InvalidCredentials: if the email is unknown or the secret is wrong.
        """
        if credentials is None:
            user_id = new_user_id()
            self._directory.ensure_user(user_id)
            logger.info("Issued anonymous identity")
            return AuthResult(user_id=user_id, session_token=self._open_session(user_id), created=True)

        try:
            email = normalize_email(credentials.email)
        except InvalidInput as err:
            raise InvalidCredentials() from err
        with self._session_factory() as db:
            record = db.get(Credential, email)
        # Unknown emails still pay for an Argon2id check.
        secret_hash = record.secret_hash if record is not None else self._dummy_hash()
        matched = verify_secret(secret_hash, credentials.secret or "")
        if record is None or not matched:
            logger.info("Rejected sign-in attempt")
            raise InvalidCredentials()

        self._directory.ensure_user(record.user_id)
        return AuthResult(user_id=record.user_id, session_token=self._open_session(record.user_id))

    def register(self, credentials: Credentials) -> AuthResult:
        """Create a registered identity and sign it in.

        Raises:
            InvalidInput: if the email or secret fail validation.
            AccountExists: if the email is already registered.
        """
        email = normalize_email(credentials.email)
        check_secret_strength(credentials.secret)

        with self._session_factory() as db:
            if db.get(Credential, email) is not None:
                raise AccountExists()

        secret_hash = hash_secret(credentials.secret, self._settings.password_hash_profile)
        user_id = new_user_id()
        with self._session_factory() as db:
            self._directory.stage_user(db, user_id)
            db.add(Credential(email=email, user_id=user_id, secret_hash=secret_hash))
            try:
                db.commit()
            except IntegrityError as err:
                db.rollback()
                raise AccountExists() from err
        logger.info("Registered new account")
        return AuthResult(user_id=user_id, session_token=self._open_session(user_id), created=True)

    def validate_session(self, token: str | None) -> bytes:
        """Return the user id bound to ``token``.

        Raises:
            Unauthenticated: if the token is missing, malformed, expired,
                unknown or revoked.
        """
        if not token:
            raise Unauthenticated()
        try:
            claims = decode_access_token(token, self._settings)
        except JWTError as err:
            raise Unauthenticated() from err

        user_id, session_id = self._subject(claims)
        with self._session_factory() as db:
            session = db.get(AuthSession, session_id)
        if session is None or session.revoked_at is not None or session.user_id != user_id:
            raise Unauthenticated("Session is no longer valid")
        return user_id

    def sign_out(self, token: str) -> None:
        """Revoke the session behind ``token``; repeated calls are harmless."""
        try:
            claims = decode_access_token(token, self._settings, verify_exp=False)
        except JWTError as err:
            raise Unauthenticated() from err
        user_id, session_id = self._subject(claims)
        with self._session_factory() as db:
            session = db.get(AuthSession, session_id)
            if session is None or session.user_id != user_id:
                raise Unauthenticated("Session is no longer valid")
            if session.revoked_at is None:
                session.revoked_at = utcnow()
                db.commit()
                logger.info("Session %s signed out", session_id)

    def _open_session(self, user_id: bytes) -> str:
        session_id = new_session_id()
        with self._session_factory() as db:
            db.add(AuthSession(session_id=session_id, user_id=user_id))
            db.commit()
        return create_access_token(user_id, session_id, self._settings)

    def _dummy_hash(self) -> bytes:
        if self._dummy_secret_hash is None:
            self._dummy_secret_hash = hash_secret(new_session_id(), self._settings.password_hash_profile)
        return self._dummy_secret_hash

    @staticmethod
    def _subject(claims: dict[str, object]) -> tuple[bytes, str]:
        subject = claims.get("sub")
        session_id = claims.get("sid")
        if not isinstance(subject, str) or not isinstance(session_id, str):
            raise Unauthenticated()
        try:
            return decode_id(subject), session_id
        except ValueError as err:
            raise Unauthenticated() from err
