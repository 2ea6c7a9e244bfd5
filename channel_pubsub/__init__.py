"""In-process channel/topic publish-subscribe router with request/reply (in-memory only, no broker)."""

from channel_pubsub.config import Options
from channel_pubsub.errors import (
    InvalidAddress,
    NoSubscribers,
    PubSubError,
    ReplyTimeout,
    UnknownChannel,
)
from channel_pubsub.message import WILDCARD, Address, Metadata
from channel_pubsub.pubsub import PubSub
from channel_pubsub.subscriber import Subscriber
from channel_pubsub.subscription import Subscription

__all__ = [
    "PubSub",
    "Options",
    "Subscription",
    "Subscriber",
    "Metadata",
    "Address",
    "WILDCARD",
    "PubSubError",
    "InvalidAddress",
    "UnknownChannel",
    "NoSubscribers",
    "ReplyTimeout",
]
