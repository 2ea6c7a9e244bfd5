# tests/conftest.py
import os

import pytest

# Loggers pick their level up when first created.
os.environ.setdefault("PUBSUB_LOG_LEVEL", "WARNING")

from channel_pubsub import PubSub, Subscription

CHANNEL_USERS = "users"
CHANNEL_ORDERS = "orders"
TOPIC_CREATED = "created"
TOPIC_UPDATED = "updated"


class Recorder:
    """Listener that remembers every (message, metadata) it receives."""

    def __init__(self, reply=None):
        self.calls = []
        self.reply = reply

    def __call__(self, message, metadata):
        self.calls.append((message, metadata))
        return self.reply

    @property
    def messages(self):
        return [m for m, _ in self.calls]

    @property
    def topics(self):
        return [md.topic for _, md in self.calls]


@pytest.fixture
def pubsub():
    return PubSub({"request_reply_timeout_ms": 1000})


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def populated(pubsub):
    """12 listeners per channel: 6 on 'created' and 6 on 'updated'."""
    subscriptions = []
    for i in range(12):
        channel = CHANNEL_USERS if i < 6 else CHANNEL_ORDERS
        for topic in (TOPIC_CREATED, TOPIC_UPDATED):
            subscriptions.append(Subscription(channel, topic, Recorder()))
    pubsub.subscribe(*subscriptions)
    return pubsub, subscriptions
