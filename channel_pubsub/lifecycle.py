"""Subscribe/unsubscribe operations, including self-expiring once-subscriptions."""

from typing import Optional

from channel_pubsub.message import WILDCARD, Address, validate_address
from channel_pubsub.observability import Metrics, get_logger
from channel_pubsub.registry import Registry
from channel_pubsub.subscriber import listener_name
from channel_pubsub.subscription import OnceListener, Registration, SubscriptionLike, as_subscription


class SubscriptionManager:
    """The only writer of the Registry."""

    def __init__(self, registry: Registry, metrics: Optional[Metrics] = None) -> None:
        self._registry = registry
        self._metrics = metrics or Metrics()
        self._logger = get_logger("channel_pubsub.lifecycle")

    def subscribe(self, spec: SubscriptionLike) -> Registration:
        subscription = as_subscription(spec)
        address = validate_address(subscription.channel, subscription.topic)

        if subscription.once:
            wrapper = OnceListener(subscription.listener, self._expire)
            registration = Registration(address, subscription.listener, handler=wrapper, once=True)
            wrapper.registration = registration
        else:
            registration = Registration(address, subscription.listener)

        self._registry.add_subscription(registration)
        self._update_gauge()
        self._logger.info(
            "subscribed",
            extra={
                "channel": address.channel,
                "topic": address.topic,
                "listener": listener_name(subscription.listener),
                "once": subscription.once,
            },
        )
        return registration

    def unsubscribe(self, spec: SubscriptionLike) -> bool:
        """Remove at most one matching subscription. Unknown address or listener is a no-op."""
        subscription = as_subscription(spec)
        channel, topic = validate_address(subscription.channel, subscription.topic)
        removed = self._registry.remove_subscription(channel, topic, subscription.listener)
        if removed:
            self._update_gauge()
            self._logger.info(
                "unsubscribed",
                extra={"channel": channel, "topic": topic, "listener": listener_name(subscription.listener)},
            )
        return removed

    def unsubscribe_all(self, channel: Optional[str], topic: Optional[str]) -> int:
        """Channel "*" applies to every channel; topic "*" to every topic in the channel. Returns the count removed."""
        if channel == WILDCARD:
            validate_address(channel, topic)
            removed = sum(self._unsubscribe_all(ch, topic) for ch in self._registry.list_channels())
        else:
            removed = self._unsubscribe_all(channel, topic)
        if removed:
            self._update_gauge()
        self._logger.info(
            "unsubscribed_all",
            extra={"channel": channel, "topic": topic, "removed": removed},
        )
        return removed

    def _unsubscribe_all(self, channel: Optional[str], topic: Optional[str]) -> int:
        channel, topic = validate_address(channel, topic)
        if topic == WILDCARD:
            return self._registry.remove_all_in_channel(channel)
        return self._registry.remove_all_under_topic(channel, topic)

    def _expire(self, wrapper: OnceListener) -> None:
        registration = wrapper.registration
        if registration is None or not self._registry.discard(registration):
            return
        self._update_gauge()
        address: Address = registration.address
        self._logger.debug(
            "once_listener_expired",
            extra={"channel": address.channel, "topic": address.topic, "listener": listener_name(wrapper.listener)},
        )

    def _update_gauge(self) -> None:
        self._metrics.set_gauge("subscriptions", self._registry.count())
