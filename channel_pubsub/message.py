"""Addressing types: the (channel, topic) registry key and the metadata passed to listeners."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, NamedTuple, Optional

from channel_pubsub.errors import InvalidAddress

WILDCARD = "*"


class Address(NamedTuple):
    """Composite registry key. Used as-is, never joined into a single string."""

    channel: str
    topic: str


@dataclass(frozen=True)
class Metadata:
    """Delivered to every listener alongside the message payload."""

    channel: str
    topic: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_address(channel: Optional[str], topic: Optional[str]) -> Address:
    """Reject missing channel/topic keys before anything is mutated or delivered."""
    if channel is None or not isinstance(channel, str):
        raise InvalidAddress(
            "Invalid channel name, channel name can not be null or undefined"
        )
    if topic is None or not isinstance(topic, str):
        raise InvalidAddress(
            'Invalid topic name, please provide topic name or "*" to subscribe on all topics within a channel'
        )
    return Address(channel, topic)
