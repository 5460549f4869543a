"""
Politeness delay between consecutive remote requests.

Sync runs are sequential; every adapter waits on its Throttle before
each request so a run never hammers a rate-limited site.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Optional


DEFAULT_MIN_INTERVAL_S = 0.8  # Minimum seconds between requests
DEFAULT_JITTER_MAX_S = 0.2    # Random jitter up to this value (added to min_interval)


@dataclass
class ThrottleConfig:
    """
    Configuration for request throttling.

    Attributes:
        min_interval_s: Minimum seconds between requests.
        jitter_max_s: Maximum random jitter added to min_interval.
        enabled: If False, throttling is disabled (for testing).
    """
    min_interval_s: float = DEFAULT_MIN_INTERVAL_S
    jitter_max_s: float = DEFAULT_JITTER_MAX_S
    enabled: bool = True

    def to_persist_dict(self) -> dict:
        return {
            "min_interval_s": self.min_interval_s,
            "jitter_max_s": self.jitter_max_s,
            "enabled": self.enabled,
        }

    @classmethod
    def from_persist_dict(cls, data: dict) -> "ThrottleConfig":
        def _float(key: str, default: float) -> float:
            try:
                return max(0.0, float(data.get(key, default)))
            except (TypeError, ValueError):
                return default

        return cls(
            min_interval_s=_float("min_interval_s", DEFAULT_MIN_INTERVAL_S),
            jitter_max_s=_float("jitter_max_s", DEFAULT_JITTER_MAX_S),
            enabled=bool(data.get("enabled", True)),
        )


class Throttle:
    """
    Async request throttler with minimum interval and random jitter.

    Usage:
        throttle = Throttle(ThrottleConfig(min_interval_s=0.8))
        await throttle.wait_async()
        await asyncio.to_thread(http.get_text, url)

    The first request only pays the jitter; later ones are spaced at least
    `min_interval_s` after the previous one.
    """

    def __init__(self, config: Optional[ThrottleConfig] = None) -> None:
        self._config = config or ThrottleConfig()
        self._last_request_time: Optional[float] = None
        self._lock = asyncio.Lock()
        self._waits = 0

    @property
    def config(self) -> ThrottleConfig:
        return self._config

    @property
    def waits(self) -> int:
        """Number of times a request slot was granted."""
        return self._waits

    def _compute_delay(self) -> float:
        if not self._config.enabled:
            return 0.0

        jitter = random.uniform(0, self._config.jitter_max_s)
        if self._last_request_time is None:
            return jitter

        elapsed = time.monotonic() - self._last_request_time
        return max(0.0, self._config.min_interval_s - elapsed) + jitter

    async def wait_async(self) -> float:
        """
        Wait until it's safe to make the next request.

        Returns:
            The actual delay waited (in seconds).
        """
        async with self._lock:
            delay = self._compute_delay()
            if delay > 0:
                await asyncio.sleep(delay)
            self._last_request_time = time.monotonic()
            self._waits += 1
            return delay

    def reset(self) -> None:
        """Reset the throttler state (for testing)."""
        self._last_request_time = None
