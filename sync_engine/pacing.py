"""Write pacing for the target service.

Notion allows an average of three requests per second per integration. The
reconciler calls :meth:`after_write` after every create/update; reads are not
paced.
"""
from __future__ import annotations

import time
from typing import Callable

from utils.logger import get_logger

log = get_logger(__name__)


class FixedDelayPacer:
    """Block for a fixed delay after each write."""

    def __init__(self, delay: float = 0.35, sleep: Callable[[float], None] = time.sleep):
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.delay = delay
        self._sleep = sleep

    def after_write(self) -> None:
        if self.delay:
            self._sleep(self.delay)


class TokenBucketPacer:
    """Allow bursts up to *capacity* writes, refilling at *rate* writes/second.

    Sleeps only when the bucket is empty, so a run with slow reads in between
    writes does not pay for delay it has already spent.
    """

    def __init__(
        self,
        rate: float = 3.0,
        capacity: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._last = clock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._last) * self.rate)
        self._last = now

    def after_write(self) -> None:
        self._refill()
        self._tokens -= 1
        if self._tokens < 0:
            wait = -self._tokens / self.rate
            log.debug("Rate limit reached, sleeping %.2fs", wait)
            self._sleep(wait)
            self._refill()


def build_pacer(strategy: str = "fixed", delay: float = 0.35, rate: float = 3.0):
    if strategy == "fixed":
        return FixedDelayPacer(delay)
    if strategy == "token-bucket":
        return TokenBucketPacer(rate=rate, capacity=max(1.0, rate))
    raise ValueError(f"Unknown pacing strategy: {strategy}")
