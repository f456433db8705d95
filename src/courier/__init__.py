"""courier: topics, subscriptions, publish, pull, ack and listen for a pub/sub service."""

from courier.client import Client, Subscription, Topic
from courier.config import ClientSettings
from courier.errors import (
    AckScopeError,
    DecodeError,
    LabelTypeError,
    ListenerBusyError,
    NotFoundError,
    PubSubError,
    ServiceError,
    TransportError,
    UnsupportedOperationError,
    ValidationError,
)
from courier.listener import Listener, ListenerState
from courier.message import IntegerLabel, Message, StringLabel

__version__ = "0.1.0"

# OAuth2 scopes for building an authorised requests.Session
SCOPE_PUBSUB = "https://www.googleapis.com/auth/pubsub"
SCOPE_CLOUD_PLATFORM = "https://www.googleapis.com/auth/cloud-platform"

__all__ = [
    "AckScopeError",
    "Client",
    "ClientSettings",
    "DecodeError",
    "IntegerLabel",
    "LabelTypeError",
    "Listener",
    "ListenerBusyError",
    "ListenerState",
    "Message",
    "NotFoundError",
    "PubSubError",
    "SCOPE_CLOUD_PLATFORM",
    "SCOPE_PUBSUB",
    "ServiceError",
    "StringLabel",
    "Subscription",
    "Topic",
    "TransportError",
    "UnsupportedOperationError",
    "ValidationError",
]
