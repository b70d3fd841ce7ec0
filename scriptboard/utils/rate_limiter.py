"""Pacing policies that keep provider call rates inside their limits."""

import time
from contextlib import contextmanager
from threading import BoundedSemaphore, Lock
from typing import Callable, Iterator, Optional


class PacingPolicy:
    """
    Thread-safe pacing for a stream of external calls.

    Two knobs, usable together:
    * `min_interval`: minimum gap in seconds between the start of two
      consecutive calls (fixed-delay pacing).
    * `max_concurrent`: upper bound on calls in flight at once.

    `PacingPolicy.sequential(delay)` is the one-at-a-time, fixed-delay
    policy used between storyboard segments.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        max_concurrent: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize pacing policy.

        Args:
            min_interval: Minimum seconds between call starts
            max_concurrent: Maximum calls in flight (None for unbounded)
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")

        self.min_interval = min_interval
        self.max_concurrent = max_concurrent
        self._sleep = sleep
        self._clock = clock
        self._lock = Lock()
        self._last_start: Optional[float] = None
        self._slots = BoundedSemaphore(max_concurrent) if max_concurrent else None

    @classmethod
    def sequential(cls, delay: float, sleep: Callable[[float], None] = time.sleep) -> "PacingPolicy":
        return cls(min_interval=delay, max_concurrent=1, sleep=sleep)

    def wait_turn(self) -> float:
        """
        Block until the next call may start.

        Returns:
            Seconds spent waiting
        """
        with self._lock:
            waited = 0.0
            now = self._clock()
            if self._last_start is not None and self.min_interval > 0:
                remaining = (self._last_start + self.min_interval) - now
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
                    now = self._clock()
            self._last_start = now
            return waited

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold a concurrency slot for the duration of one paced call."""
        if self._slots is not None:
            self._slots.acquire()
        try:
            self.wait_turn()
            yield
        finally:
            if self._slots is not None:
                self._slots.release()

    def reset(self) -> None:
        with self._lock:
            self._last_start = None
