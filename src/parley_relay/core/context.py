"""Service context wiring every relay component together."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from parley_relay.core.settings import Settings
from parley_relay.db.session import create_engine_for, create_session_factory, create_tables
from parley_relay.services.broker import SubscriptionBroker
from parley_relay.services.directory import ConversationDirectory
from parley_relay.services.identity import IdentityStore
from parley_relay.services.message_log import MessageLog
from parley_relay.services.object_store import LocalObjectStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Components built once at startup and injected into request handlers."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    directory: ConversationDirectory
    identity: IdentityStore
    message_log: MessageLog
    broker: SubscriptionBroker
    object_store: LocalObjectStore

    def close(self) -> None:
        """Close live subscriptions and release database connections."""
        self.broker.close_all()
        self.engine.dispose()


def build_context(settings: Settings) -> ServiceContext:
    """Construct the service graph described by ``settings``."""
    engine = create_engine_for(settings)
    if settings.auto_create_tables:
        create_tables(engine)
    session_factory = create_session_factory(engine)

    directory = ConversationDirectory(session_factory)
    identity = IdentityStore(session_factory, directory, settings)
    message_log = MessageLog(
        session_factory,
        write_timeout=settings.storage_timeout_seconds,
        read_batch_size=settings.read_batch_size,
        max_length=settings.message_max_length,
    )
    broker = SubscriptionBroker(
        message_log,
        queue_size=settings.subscription_queue_size,
        push_timeout=settings.push_timeout_seconds,
    )
    object_store = LocalObjectStore(
        settings.media_root,
        settings.media_base_url,
        settings.max_upload_bytes,
    )
    logger.info("Service context ready (database: %s)", engine.url.render_as_string(hide_password=True))
    return ServiceContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        directory=directory,
        identity=identity,
        message_log=message_log,
        broker=broker,
        object_store=object_store,
    )
