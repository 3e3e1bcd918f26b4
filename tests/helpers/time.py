"""Shared, deterministic time sources for tests."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


# Fixed timestamp so "yesterday" windows resolve to the same day everywhere.
FIXED_NOW = datetime(2025, 10, 24, 8, 30, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Monotonic clock whose sleep advances time instead of blocking.

    Every sleep duration is recorded so tests can assert on waits.
    """

    now: float = 1000.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds

    @property
    def total_slept(self) -> float:
        return sum(self.sleeps)
