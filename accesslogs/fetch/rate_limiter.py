"""Sliding-window rate limiter for upstream API calls.

The provider enforces a fixed number of requests per rolling window for
the whole account. The limiter records the instant each request slot is
granted and blocks the caller until granting another slot keeps the
trailing window within the effective limit.

Waiting is a polling loop around a timed sleep: the window is evaluated,
the caller sleeps until the oldest timestamp is expected to leave it, and
the window is evaluated again. The configuration is re-read on every
iteration so a margin change applied through `update_config` takes effect
for callers that are already waiting.
"""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from accesslogs.fetch.config import RateLimiterConfig
from accesslogs.fetch.constants import (
    RATE_LIMIT_IDLE_POLL_SECONDS,
    RATE_LIMIT_SLACK_SECONDS,
)
from accesslogs.fetch.metrics import FetchMetrics


logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimiterState:
    """Point-in-time view of the limiter, for monitoring and tests."""

    rate_limit: int
    rate_window_seconds: float
    safety_margin: int
    effective_limit: int
    recent_timestamps: tuple[float, ...]

    @property
    def available_slots(self) -> int:
        """Slots that can be granted right now without waiting."""
        return max(0, self.effective_limit - len(self.recent_timestamps))


@dataclass
class SlidingWindowRateLimiter:
    """Sliding-window limiter guarding a single provider quota.

    Across any rolling window of `rate_window_seconds`, at most
    `effective_limit` reservations are granted. Evaluation and append
    happen under one lock, which is released while sleeping, so several
    producer threads may share an instance.

    Attributes:
        config: Quota configuration.
        clock: Monotonic time source in seconds.
        sleep: Blocking sleep function.
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    _timestamps: deque[float] = field(init=False, default_factory=deque)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _wait_count: int = field(init=False, default=0)
    _total_wait_seconds: float = field(init=False, default=0.0)

    def _prune(self, now: float, window: float) -> None:
        """Discard timestamps older than the window.

        Must be called while holding the lock.
        """
        cutoff = now - window
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()

    def reserve_slot(self) -> float:
        """Block until a request may proceed, then record the grant.

        Returns:
            The clock reading at which the slot was granted.
        """
        while True:
            with self._lock:
                config = self.config
                now = self.clock()
                self._prune(now, config.rate_window_seconds)

                if len(self._timestamps) < config.effective_limit:
                    self._timestamps.append(now)
                    return now

                oldest = self._timestamps[0]
                wait_seconds = (
                    oldest + config.rate_window_seconds - now + RATE_LIMIT_SLACK_SECONDS
                )
                if wait_seconds <= 0:
                    wait_seconds = RATE_LIMIT_IDLE_POLL_SECONDS
                self._wait_count += 1
                self._total_wait_seconds += wait_seconds
                in_window = len(self._timestamps)

            logger.debug(
                "rate_limit_wait",
                component="rate_limiter",
                wait_seconds=round(wait_seconds, 3),
                in_window=in_window,
                effective_limit=config.effective_limit,
            )
            FetchMetrics.get_instance().record_rate_limit_wait(wait_seconds)

            # Release lock before sleeping
            self.sleep(wait_seconds)

    def update_config(self, config: RateLimiterConfig) -> None:
        """Swap the quota configuration; waiting callers pick it up.

        Args:
            config: New quota configuration.
        """
        with self._lock:
            self.config = config

    def get_state(self) -> RateLimiterState:
        """Get the current configuration and in-window timestamps."""
        with self._lock:
            config = self.config
            self._prune(self.clock(), config.rate_window_seconds)
            return RateLimiterState(
                rate_limit=config.rate_limit,
                rate_window_seconds=config.rate_window_seconds,
                safety_margin=config.safety_margin,
                effective_limit=config.effective_limit,
                recent_timestamps=tuple(self._timestamps),
            )

    @property
    def wait_count(self) -> int:
        """Get the number of times a caller had to wait."""
        with self._lock:
            return self._wait_count

    @property
    def total_wait_seconds(self) -> float:
        """Get the cumulative time callers were asked to sleep."""
        with self._lock:
            return self._total_wait_seconds
