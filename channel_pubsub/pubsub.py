"""PubSub: the public router API over one instance-owned registry."""

from typing import Any, List, Mapping, Optional, Union

from channel_pubsub.config import Options, resolve_options
from channel_pubsub.dispatcher import Dispatcher, ErrorHook
from channel_pubsub.lifecycle import SubscriptionManager
from channel_pubsub.message import WILDCARD
from channel_pubsub.observability import Metrics, get_logger
from channel_pubsub.registry import Registry
from channel_pubsub.reply import RequestReplyCoordinator
from channel_pubsub.subscriber import Listener
from channel_pubsub.subscription import SubscriptionLike


class PubSub:
    """
    In-process publish/subscribe router addressed by (channel, topic).

    "*" as a topic means every topic of a channel (publish, unsubscribe_all,
    subscribers) or, when subscribed to, everything published in the channel.
    "*" as a channel means every channel (unsubscribe_all, subscribers).
    """

    def __init__(
        self,
        options: Union[Options, Mapping[str, Any], None] = None,
        *,
        on_listener_error: Optional[ErrorHook] = None,
    ) -> None:
        self._options = resolve_options(options)
        self._registry = Registry()
        self._metrics = Metrics()
        self._lifecycle = SubscriptionManager(self._registry, self._metrics)
        self._dispatcher = Dispatcher(self._registry, self._metrics, on_listener_error)
        self._reply = RequestReplyCoordinator(self._registry, self._options, self._metrics)
        self._logger = get_logger("channel_pubsub.router")
        self._logger.debug(
            "created",
            extra={"request_reply_timeout_ms": self._options.request_reply_timeout_ms},
        )

    def subscribe(self, *subscriptions: SubscriptionLike) -> None:
        """Register each subscription in order. Stops at the first invalid one."""
        for subscription in subscriptions:
            self._lifecycle.subscribe(subscription)

    def unsubscribe(self, *subscriptions: SubscriptionLike) -> None:
        """Remove one matching registration per spec; specs that match nothing are ignored."""
        for subscription in subscriptions:
            self._lifecycle.unsubscribe(subscription)

    def unsubscribe_all(self, channel: Optional[str], topic: Optional[str]) -> None:
        self._lifecycle.unsubscribe_all(channel, topic)

    def publish(self, channel: Optional[str], topic: Optional[str], message: Any) -> None:
        """
        Deliver synchronously to current listeners.

        Raises InvalidAddress for a missing channel/topic and UnknownChannel if
        the channel never had a subscriber.
        """
        self._dispatcher.publish(channel, topic, message)

    async def publish_and_get_reply(
        self,
        channel: Optional[str],
        topic: Optional[str],
        message: Any,
        timeout_ms: Optional[int] = None,
    ) -> Any:
        """
        Return the first-subscribed listener's result for the exact (channel, topic).

        Raises NoSubscribers if nobody listens there, and ReplyTimeout if the
        listener does not settle within `timeout_ms` (or the configured default).
        """
        return await self._reply.request(channel, topic, message, timeout_ms)

    def options(self) -> Options:
        return self._options

    def metrics(self) -> Metrics:
        return self._metrics

    def channels(self) -> List[str]:
        return self._registry.list_channels()

    def topics(self, channel: Optional[str]) -> List[str]:
        return self._registry.list_topics(channel)

    def subscribers(self, channel: Optional[str], topic: str = WILDCARD) -> List[Listener]:
        """Listeners across the selected channel(s) and topic(s), duplicates included."""
        if channel is None:
            return []
        channels = self._registry.list_channels() if channel == WILDCARD else [channel]
        listeners: List[Listener] = []
        for ch in channels:
            topics = self._registry.list_topics(ch) if topic == WILDCARD else [topic]
            for t in topics:
                listeners.extend(self._registry.list_listeners(ch, t))
        return listeners

    def __repr__(self) -> str:
        return f"PubSub(channels={len(self.channels())}, options={self._options!r})"
