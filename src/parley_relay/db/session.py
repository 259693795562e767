"""Database engine and session configuration."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from parley_relay.core.settings import Settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import parley_relay.models  # noqa: E402,F401

_IN_MEMORY_SQLITE = {"sqlite://", "sqlite:///:memory:"}


def create_engine_for(settings: Settings) -> Engine:
    """Build the engine described by ``settings``.

    SQLite connections get a busy timeout equal to the storage timeout so a
    locked database surfaces as an error instead of blocking indefinitely.
    In-memory SQLite uses a single shared connection.
    """
    kwargs: dict[str, object] = {"pool_pre_ping": True, "echo": settings.sql_debug}
    if settings.is_sqlite:
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.storage_timeout_seconds,
        }
        if settings.database_url in _IN_MEMORY_SQLITE:
            kwargs["poolclass"] = StaticPool
    return create_engine(settings.database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory whose objects stay readable after commit."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)

