"""Core relay services."""

from .broker import ChannelClosed, PushChannel, Subscription, SubscriptionBroker
from .client_sync import ClientSyncAdapter
from .directory import ConversationDirectory
from .identity import AuthResult, Credentials, IdentityStore
from .message_log import MessageLog
from .object_store import LocalObjectStore, ObjectStore

__all__ = [
    "AuthResult",
    "ChannelClosed",
    "ClientSyncAdapter",
    "ConversationDirectory",
    "Credentials",
    "IdentityStore",
    "LocalObjectStore",
    "MessageLog",
    "ObjectStore",
    "PushChannel",
    "Subscription",
    "SubscriptionBroker",
]
