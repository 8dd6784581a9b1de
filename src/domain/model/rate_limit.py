from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of recording one attempt against a rate-limit window."""
    allowed: bool
    remaining: int
    retry_after: int = 0
