"""Structured logging for pub-sub events (subscribe, publish, deliver, reply)."""

import logging
import os
import sys
from typing import Optional

LOG_LEVEL_ENV = "PUBSUB_LOG_LEVEL"


def _level_from_env(default: int) -> int:
    name = (os.environ.get(LOG_LEVEL_ENV) or "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Return a configured logger for observability. Level defaults to PUBSUB_LOG_LEVEL or INFO."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
            )
        )
        logger.addHandler(handler)
        logger.setLevel(level if level is not None else _level_from_env(logging.INFO))
    return logger
