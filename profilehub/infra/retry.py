"""
Polling primitives shared by the device flow and fork readiness checks.

Both waits are plain blocking sleeps, so Ctrl+C interrupts them
cleanly. Time is read through a Clock so tests can run them instantly.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional


class Clock:
    """Wall clock, monotonic clock and sleep behind one seam."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def timestamp(self) -> str:
        """Current UTC time as ISO 8601 with millisecond precision."""
        return self.now().isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class RetryPolicy:
    """
    How often and how long to poll.

    Attributes:
        max_attempts: Number of polls before giving up (None = unbounded,
            use ``deadline`` to stop)
        interval: Seconds to wait before each poll
        backoff_increment: Seconds added to the interval by ``slow_down()``
        min_interval: Floor applied to ``interval``
        deadline: Seconds from start after which polling stops
    """
    max_attempts: Optional[int] = None
    interval: float = 5.0
    backoff_increment: float = 0.0
    min_interval: float = 0.0
    deadline: Optional[float] = None

    def __post_init__(self):
        self.interval = max(self.interval, self.min_interval)

    def slow_down(self) -> None:
        """Lengthen every later wait by the backoff increment."""
        self.interval += self.backoff_increment

    def attempts(self, clock: Clock) -> Iterator[int]:
        """
        Yield attempt numbers, sleeping ``interval`` before each one.

        Stops after ``max_attempts`` or once ``deadline`` seconds have
        passed since the first call. The caller breaks out on success.
        """
        started = clock.monotonic()
        attempt = 0
        while self.max_attempts is None or attempt < self.max_attempts:
            if self.deadline is not None and clock.monotonic() - started >= self.deadline:
                return
            clock.sleep(self.interval)
            attempt += 1
            yield attempt
