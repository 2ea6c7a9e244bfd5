"""Subscription specs (what callers pass in) and registry records (what the registry holds)."""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from channel_pubsub.message import Address, Metadata
from channel_pubsub.subscriber import Listener


@dataclass
class Subscription:
    """Caller-facing subscription spec. `once` is ignored by unsubscribe."""

    channel: Optional[str]
    topic: Optional[str]
    listener: Listener
    once: bool = False

    def __post_init__(self) -> None:
        if not callable(self.listener):
            raise TypeError("subscription requires a callable listener")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Subscription":
        listener = data.get("listener", data.get("callback"))
        return cls(
            channel=data.get("channel"),
            topic=data.get("topic"),
            listener=listener,
            once=bool(data.get("once", False)),
        )


SubscriptionLike = Union[Subscription, Mapping[str, Any]]


def as_subscription(spec: SubscriptionLike) -> Subscription:
    if isinstance(spec, Subscription):
        return spec
    return Subscription.from_dict(spec)


class Registration:
    """One registry entry. `handler` is what dispatch calls; `listener` is what queries report."""

    __slots__ = ("address", "listener", "handler", "once")

    def __init__(
        self,
        address: Address,
        listener: Listener,
        handler: Optional[Callable[[Any, Metadata], Any]] = None,
        once: bool = False,
    ) -> None:
        self.address = address
        self.listener = listener
        self.handler = handler if handler is not None else listener
        self.once = once

    def __call__(self, message: Any, metadata: Metadata) -> Any:
        return self.handler(message, metadata)

    def __repr__(self) -> str:
        return (
            f"Registration(channel={self.address.channel!r}, topic={self.address.topic!r}, "
            f"listener={self.listener!r}, once={self.once})"
        )


class OnceListener:
    """Wraps a listener so it fires at most once, then drops its own registration."""

    def __init__(self, listener: Listener, expire: Callable[["OnceListener"], None]) -> None:
        self.listener = listener
        self._expire = expire
        self._fired = False
        self._lock = threading.Lock()
        self.registration: Optional[Registration] = None

    def claim(self) -> bool:
        """Return True for exactly one caller."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True

    def __call__(self, message: Any, metadata: Metadata) -> Any:
        if not self.claim():
            return None
        try:
            return self.listener(message, metadata)
        finally:
            self._expire(self)
