"""Router options: defaults, validation (pydantic) and environment loading (python-dotenv)."""

import os
from typing import Any, Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

REQUEST_REPLY_DEFAULT_TIMEOUT_MS = 2000
REQUEST_REPLY_TIMEOUT_ENV = "PUBSUB_REQUEST_REPLY_TIMEOUT_MS"


class Options(BaseModel):
    """Options fixed at PubSub construction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    request_reply_timeout_ms: int = Field(default=REQUEST_REPLY_DEFAULT_TIMEOUT_MS, gt=0)

    @classmethod
    def from_env(cls) -> "Options":
        """Build options from the environment (and .env if present). Bad values fall back to defaults."""
        load_dotenv()
        try:
            timeout_ms = int(os.environ.get(REQUEST_REPLY_TIMEOUT_ENV, REQUEST_REPLY_DEFAULT_TIMEOUT_MS))
        except (ValueError, TypeError):
            timeout_ms = REQUEST_REPLY_DEFAULT_TIMEOUT_MS
        if timeout_ms <= 0:
            timeout_ms = REQUEST_REPLY_DEFAULT_TIMEOUT_MS
        return cls(request_reply_timeout_ms=timeout_ms)


def resolve_options(options: Union[Options, Mapping[str, Any], None]) -> Options:
    """Accept an Options instance, a mapping of option fields, or None for defaults."""
    if options is None:
        return Options()
    if isinstance(options, Options):
        return options
    return Options.model_validate(dict(options))


def resolve_timeout_ms(options: Options, timeout_ms: Optional[int]) -> int:
    """Per-call override wins over the configured default."""
    if timeout_ms is None:
        return options.request_reply_timeout_ms
    if timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
    return int(timeout_ms)
