"""Listener types: plain callables, coroutine functions, or class-based Subscribers."""

import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from channel_pubsub.observability import get_logger

if TYPE_CHECKING:
    from channel_pubsub.message import Metadata

Listener = Callable[[Any, "Metadata"], Union[Any, Awaitable[Any]]]


def same_listener(a: Listener, b: Listener) -> bool:
    """Identity match. Bound methods are re-created on every attribute access, so they compare by ==."""
    if a is b:
        return True
    return inspect.ismethod(a) and inspect.ismethod(b) and a == b


def listener_name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


class Subscriber(ABC):
    """Abstract base class for class-based listeners. Instances are callables and subscribe like functions."""

    def __init__(self, subscriber_id: str) -> None:
        self._subscriber_id = subscriber_id
        self._logger = get_logger(f"channel_pubsub.subscriber.{subscriber_id}")

    @property
    def subscriber_id(self) -> str:
        return self._subscriber_id

    @abstractmethod
    def on_message(self, message: Any, metadata: "Metadata") -> Any:
        """Handle a delivered message. The return value is the reply in request/reply mode."""

    def __call__(self, message: Any, metadata: "Metadata") -> Any:
        self._logger.debug(
            "message_received",
            extra={
                "channel": metadata.channel,
                "topic": metadata.topic,
                "subscriber_id": self._subscriber_id,
                "payload_type": type(message).__name__,
            },
        )
        return self.on_message(message, metadata)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._subscriber_id!r})"
