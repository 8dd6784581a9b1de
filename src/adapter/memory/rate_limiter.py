"""In-process sliding-window implementation of RateLimiter.

Used when no Redis is configured. Counts are per process, so with several
API workers the effective limit is multiplied by the worker count.
"""

import math
import threading
import time
from collections import deque
from typing import Callable

from domain.model.rate_limit import RateLimitDecision


def _prune(hits: deque, cutoff: float) -> None:
    while hits and hits[0] <= cutoff:
        hits.popleft()


class InMemoryRateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.get(key)
            if hits is None:
                hits = self._hits[key] = deque()
            _prune(hits, cutoff)

            if len(hits) >= self.limit:
                retry_after = max(1, math.ceil(hits[0] + self.window_seconds - now))
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            hits.append(now)
            return RateLimitDecision(allowed=True, remaining=self.limit - len(hits))

    def _sweep(self, cutoff: float) -> None:
        # Addresses with no hits left in the window are forgotten
        for key in list(self._hits):
            hits = self._hits[key]
            _prune(hits, cutoff)
            if not hits:
                del self._hits[key]

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)

    def ping(self) -> bool:
        return True
