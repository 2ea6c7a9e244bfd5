"""In-memory channel -> topic -> listeners registry. Bookkeeping only, no delivery."""

import threading
from typing import Dict, List, Optional, Set

from channel_pubsub.subscriber import Listener, same_listener
from channel_pubsub.subscription import Registration


class Registry:
    """
    Ordered listener lists keyed by channel, then topic.

    Topics and channels are pruned once their last listener goes away, so
    queries never see empty entries. Channel names are remembered after
    pruning: a channel that ever had a subscriber stays publishable.
    """

    def __init__(self) -> None:
        self._channels: Dict[str, Dict[str, List[Registration]]] = {}
        self._known_channels: Set[str] = set()
        self._lock = threading.RLock()

    def add_subscription(self, registration: Registration) -> Registration:
        """Append a registration, creating its channel and topic lazily."""
        channel, topic = registration.address
        with self._lock:
            self._channels.setdefault(channel, {}).setdefault(topic, []).append(registration)
            self._known_channels.add(channel)
        return registration

    def remove_subscription(self, channel: str, topic: str, listener: Listener) -> bool:
        """Remove the first registration of `listener` under (channel, topic). Returns False if none matched."""
        with self._lock:
            registrations = self._registrations(channel, topic)
            for index, registration in enumerate(registrations):
                if same_listener(registration.listener, listener):
                    del registrations[index]
                    self._prune(channel, topic)
                    return True
        return False

    def discard(self, registration: Registration) -> bool:
        """Remove exactly this registration (by identity). Returns False if it was already gone."""
        channel, topic = registration.address
        with self._lock:
            registrations = self._registrations(channel, topic)
            for index, candidate in enumerate(registrations):
                if candidate is registration:
                    del registrations[index]
                    self._prune(channel, topic)
                    return True
        return False

    def remove_all_under_topic(self, channel: str, topic: str) -> int:
        """Drop every registration under one concrete topic. Returns how many were removed."""
        with self._lock:
            topics = self._channels.get(channel)
            if topics is None or topic not in topics:
                return 0
            removed = len(topics.pop(topic))
            if not topics:
                del self._channels[channel]
            return removed

    def remove_all_in_channel(self, channel: str) -> int:
        with self._lock:
            topics = self._channels.pop(channel, None)
            if topics is None:
                return 0
            return sum(len(registrations) for registrations in topics.values())

    def has_channel(self, channel: str) -> bool:
        """True if the channel ever had a subscriber, even if it has none now."""
        with self._lock:
            return channel in self._known_channels

    def list_channels(self) -> List[str]:
        """Channels with at least one live listener, in creation order."""
        with self._lock:
            return list(self._channels)

    def list_topics(self, channel: Optional[str]) -> List[str]:
        """Topics with at least one live listener in `channel`; [] for unknown channels."""
        with self._lock:
            return list(self._channels.get(channel, {})) if channel is not None else []

    def list_listeners(self, channel: str, topic: str) -> List[Listener]:
        """Listeners under exactly (channel, topic), in subscription order."""
        return [registration.listener for registration in self.list_registrations(channel, topic)]

    def list_registrations(self, channel: str, topic: str) -> List[Registration]:
        """Snapshot copy, safe to iterate while listeners mutate the registry."""
        with self._lock:
            return list(self._registrations(channel, topic))

    def count(self) -> int:
        with self._lock:
            return sum(
                len(registrations)
                for topics in self._channels.values()
                for registrations in topics.values()
            )

    def _registrations(self, channel: str, topic: str) -> List[Registration]:
        topics = self._channels.get(channel)
        if topics is None:
            return []
        return topics.get(topic, [])

    def _prune(self, channel: str, topic: str) -> None:
        topics = self._channels.get(channel)
        if topics is None:
            return
        if topic in topics and not topics[topic]:
            del topics[topic]
        if not topics:
            del self._channels[channel]

    def __repr__(self) -> str:
        return f"Registry(channels={len(self._channels)}, subscriptions={self.count()})"
