"""Request/reply: race the first listener's result against a timeout."""

import asyncio
import inspect
from typing import Any, Optional

from channel_pubsub.config import Options, resolve_timeout_ms
from channel_pubsub.errors import NoSubscribers, ReplyTimeout
from channel_pubsub.message import Metadata, validate_address
from channel_pubsub.observability import Metrics, get_logger
from channel_pubsub.registry import Registry
from channel_pubsub.subscriber import listener_name


def _discard_outcome(task: "asyncio.Future[Any]") -> None:
    # Retrieve the late result so the loop never reports it as unhandled.
    if not task.cancelled():
        task.exception()


class RequestReplyCoordinator:
    """
    Exact-address request/reply. Only the first-subscribed listener under the
    literal (channel, topic) is asked; channel-wide "*" listeners are not.
    """

    def __init__(self, registry: Registry, options: Options, metrics: Optional[Metrics] = None) -> None:
        self._registry = registry
        self._options = options
        self._metrics = metrics or Metrics()
        self._logger = get_logger("channel_pubsub.reply")

    async def request(
        self,
        channel: Optional[str],
        topic: Optional[str],
        message: Any,
        timeout_ms: Optional[int] = None,
    ) -> Any:
        channel, topic = validate_address(channel, topic)
        timeout = resolve_timeout_ms(self._options, timeout_ms)

        registrations = self._registry.list_registrations(channel, topic)
        if not registrations:
            raise NoSubscribers(channel, topic)

        registration = registrations[0]
        result = registration(message, Metadata(channel, topic))
        if not inspect.isawaitable(result):
            # A synchronous listener has already settled.
            self._metrics.increment("replies")
            return result

        task = asyncio.ensure_future(result)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout / 1000.0)
        except asyncio.CancelledError:
            task.add_done_callback(_discard_outcome)
            raise
        if task not in done:
            task.add_done_callback(_discard_outcome)
            self._metrics.increment("reply_timeouts")
            self._logger.warning(
                "reply_timeout",
                extra={
                    "channel": channel,
                    "topic": topic,
                    "listener": listener_name(registration.listener),
                    "timeout_ms": timeout,
                },
            )
            raise ReplyTimeout(timeout)

        self._metrics.increment("replies")
        return task.result()
