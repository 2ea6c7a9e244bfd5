"""Observability: logging and metrics for the pub-sub router."""

from channel_pubsub.observability.logger import get_logger
from channel_pubsub.observability.metrics import Metrics

__all__ = ["get_logger", "Metrics"]
