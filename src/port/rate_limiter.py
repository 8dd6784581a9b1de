"""Port definition for attempt throttling."""

from typing import Protocol

from domain.model.rate_limit import RateLimitDecision


class RateLimiter(Protocol):
    def hit(self, key: str) -> RateLimitDecision: ...
    def ping(self) -> bool: ...
