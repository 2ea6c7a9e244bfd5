"""Resolves a publish address to listener sets (wildcards included) and delivers synchronously."""

import asyncio
import inspect
from typing import Any, Callable, List, NamedTuple, Optional

from channel_pubsub.errors import UnknownChannel
from channel_pubsub.message import WILDCARD, Address, Metadata, validate_address
from channel_pubsub.observability import Metrics, get_logger
from channel_pubsub.registry import Registry
from channel_pubsub.subscriber import Listener, listener_name
from channel_pubsub.subscription import Registration

ErrorHook = Callable[[BaseException, Metadata, Listener], None]


class Target(NamedTuple):
    """Registrations found under `address`, to be called with `metadata`."""

    address: Address
    metadata: Metadata
    registrations: List[Registration]


class Dispatcher:
    """
    Fan-out delivery over a Registry.

    Each listener call is isolated: an exception is logged, counted and handed
    to `on_listener_error`, and delivery continues with the next listener.
    Awaitables returned by listeners are scheduled on the running loop and
    not awaited.
    """

    def __init__(
        self,
        registry: Registry,
        metrics: Optional[Metrics] = None,
        on_listener_error: Optional[ErrorHook] = None,
    ) -> None:
        self._registry = registry
        self._metrics = metrics or Metrics()
        self._on_listener_error = on_listener_error
        self._logger = get_logger("channel_pubsub.dispatcher")
        self._pending: set = set()

    def resolve_targets(self, channel: str, topic: str) -> List[Target]:
        """
        Topic "*" expands to every live topic in the channel, each with its own metadata.
        A concrete topic resolves to itself plus the channel-wide "*" listeners, both
        reported with the concrete topic.
        """
        if topic == WILDCARD:
            targets = []
            for concrete in self._registry.list_topics(channel):
                registrations = self._registry.list_registrations(channel, concrete)
                if registrations:
                    targets.append(Target(Address(channel, concrete), Metadata(channel, concrete), registrations))
            return targets

        metadata = Metadata(channel, topic)
        targets = []
        for address in (Address(channel, topic), Address(channel, WILDCARD)):
            registrations = self._registry.list_registrations(*address)
            if registrations:
                targets.append(Target(address, metadata, registrations))
        return targets

    def publish(self, channel: Optional[str], topic: Optional[str], message: Any) -> int:
        """Deliver `message` to every resolved listener. Returns the number of listeners invoked."""
        channel, topic = validate_address(channel, topic)
        if not self._registry.has_channel(channel):
            raise UnknownChannel(channel)

        targets = self.resolve_targets(channel, topic)
        self._metrics.increment("published")
        delivered = 0
        for target in targets:
            for registration in target.registrations:
                self._deliver(registration, message, target.metadata)
                delivered += 1
        self._logger.debug(
            "published",
            extra={"channel": channel, "topic": topic, "delivered": delivered},
        )
        return delivered

    def _deliver(self, registration: Registration, message: Any, metadata: Metadata) -> None:
        try:
            result = registration(message, metadata)
        except Exception as e:
            self._report_failure(e, registration.listener, metadata)
            return
        self._metrics.increment("delivered")
        if inspect.isawaitable(result):
            self._schedule(result, registration.listener, metadata)

    def _schedule(self, awaitable: Any, listener: Listener, metadata: Metadata) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._logger.warning(
                "async_listener_without_loop",
                extra={"channel": metadata.channel, "topic": metadata.topic, "listener": listener_name(listener)},
            )
            return
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(t: "asyncio.Future[Any]") -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                self._report_failure(exc, listener, metadata)

        task.add_done_callback(_done)

    def _report_failure(self, exc: BaseException, listener: Listener, metadata: Metadata) -> None:
        self._metrics.increment("delivery_failed")
        self._logger.error(
            "delivery_failed",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={
                "channel": metadata.channel,
                "topic": metadata.topic,
                "listener": listener_name(listener),
                "error": str(exc),
            },
        )
        if self._on_listener_error is None:
            return
        try:
            self._on_listener_error(exc, metadata, listener)
        except Exception:
            self._logger.exception("listener_error_hook_failed", extra={"channel": metadata.channel})
