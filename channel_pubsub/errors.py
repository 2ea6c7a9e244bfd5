"""Errors raised to the caller of the pub-sub API. None are retried internally."""


class PubSubError(Exception):
    """Base class for all pub-sub routing errors."""


class InvalidAddress(PubSubError, ValueError):
    """Channel or topic is missing (None) or not a string."""


class UnknownChannel(PubSubError, LookupError):
    """Publish targeted a channel that never had a subscriber."""

    def __init__(self, channel: str) -> None:
        super().__init__(
            f"Channel {channel} does not exists, make sure that you have subscribers to get channel created"
        )
        self.channel = channel


class NoSubscribers(PubSubError, LookupError):
    """Request/reply targeted a (channel, topic) with no current listener."""

    def __init__(self, channel: str, topic: str) -> None:
        super().__init__(
            f"No subscribers for event {channel}/{topic}, "
            "At least one subscriber must be exists to process response-reply requests"
        )
        self.channel = channel
        self.topic = topic


class ReplyTimeout(PubSubError, TimeoutError):
    """The selected listener did not settle before the reply timeout elapsed."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Event reply timeout after {timeout_ms} ms")
        self.timeout_ms = timeout_ms
