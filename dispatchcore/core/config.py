#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Runtime configuration read from the environment.

Variables:
- ``DISPATCH_ENDPOINT_URL``: public URL of this endpoint, stamped on built calls
- ``DISPATCH_POLL_MAX_WAIT``: seconds a poll may wait for results (default 300)
- ``DISPATCH_LOG_LEVEL``: level of the ``dispatchcore`` loggers (default WARNING)
"""

import os
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional
from urllib.parse import urlparse

from .utils.logger import coerce_level

ENV_ENDPOINT_URL = "DISPATCH_ENDPOINT_URL"
ENV_POLL_MAX_WAIT = "DISPATCH_POLL_MAX_WAIT"
ENV_LOG_LEVEL = "DISPATCH_LOG_LEVEL"

DEFAULT_POLL_MAX_WAIT = timedelta(minutes=5)
DEFAULT_LOG_LEVEL = "WARNING"


def _validate_url(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"{ENV_ENDPOINT_URL} must be an absolute URL, got {url!r}")
    return url


def _parse_max_wait(raw: str) -> timedelta:
    try:
        seconds = float(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_POLL_MAX_WAIT} must be a number of seconds, got {raw!r}") from exc
    if seconds <= 0:
        raise ValueError(f"{ENV_POLL_MAX_WAIT} must be positive, got {raw!r}")
    return timedelta(seconds=seconds)


@dataclass(frozen=True)
class DispatchConfig:
    endpoint_url: Optional[str] = None
    poll_max_wait: timedelta = DEFAULT_POLL_MAX_WAIT
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if self.endpoint_url:
            _validate_url(self.endpoint_url)
        if self.poll_max_wait <= timedelta(0):
            raise ValueError("poll_max_wait must be positive")
        try:
            coerce_level(self.log_level)
        except ValueError as exc:
            raise ValueError(f"log_level must name a logging level, got {self.log_level!r}") from exc

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DispatchConfig":
        """Build a configuration from ``env`` (``os.environ`` by default)."""
        if env is None:
            env = os.environ

        endpoint_url = env.get(ENV_ENDPOINT_URL, "").strip() or None
        raw_wait = env.get(ENV_POLL_MAX_WAIT, "").strip()
        poll_max_wait = _parse_max_wait(raw_wait) if raw_wait else DEFAULT_POLL_MAX_WAIT
        log_level = env.get(ENV_LOG_LEVEL, "").strip().upper() or DEFAULT_LOG_LEVEL

        return cls(endpoint_url=endpoint_url, poll_max_wait=poll_max_wait, log_level=log_level)


_config: Optional[DispatchConfig] = None
_config_lock = threading.Lock()


def get_config() -> DispatchConfig:
    """Process-wide configuration, read from the environment on first use."""
    global _config
    with _config_lock:
        if _config is None:
            _config = DispatchConfig.from_env()
        return _config


def set_config(config: Optional[DispatchConfig]) -> None:
    """Replace the process-wide configuration; ``None`` re-reads the environment next time."""
    global _config
    with _config_lock:
        _config = config


__all__ = [
    "DEFAULT_POLL_MAX_WAIT",
    "DispatchConfig",
    "get_config",
    "set_config",
]
