"""Redis implementation of RateLimiter.

Fixed window per key:
- INCR + TTL in one pipeline; EXPIRE is set once, when the key has no TTL yet,
  so the window starts at the first hit (works on Redis versions without EXPIRE NX)
- TTL of the key is the retry-after hint once the budget is spent
- Connection: Cached client with automatic reconnection

If Redis is unreachable the limiter fails open and logs a warning.
"""

import logging
import os
from typing import Optional

import redis
from redis.exceptions import RedisError

from domain.model.rate_limit import RateLimitDecision

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv('REDIS_URL', '')
KEY_PREFIX = 'formreg:ratelimit'


class RedisRateLimiter:
    def __init__(self, limit: int, window_seconds: int, scope: str = 'login'):
        self.limit = limit
        self.window_seconds = window_seconds
        self.scope = scope
        self._client_cache: Optional[redis.Redis] = None
        self._connection_attempted: bool = False
        self._connection_failed: bool = False

    def _get_client(self) -> Optional[redis.Redis]:
        """Get Redis client with caching and reconnection logic."""
        if self._client_cache:
            try:
                self._client_cache.ping()
                return self._client_cache
            except Exception:
                self._client_cache = None
                logger.debug("[REDIS] Cached client failed ping, attempting reconnection...")

        if self._connection_failed:
            return None

        if not REDIS_URL:
            logger.error("[REDIS] REDIS_URL not configured.")
            self._connection_failed = True
            return None

        try:
            client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            client.ping()

            is_first = not self._connection_attempted
            self._connection_attempted = True
            self._client_cache = client

            if is_first:
                logger.info("[REDIS] Connected successfully")

            return client
        except (RedisError, ValueError, OSError) as e:
            if not self._connection_attempted:
                logger.error(f"[REDIS] Initial connection failed: {str(e)[:200]}")
                self._connection_failed = True
            return None

    def _key(self, key: str) -> str:
        return f"{KEY_PREFIX}:{self.scope}:{key}"

    # ── RateLimiter implementation ───────────────────────────

    def hit(self, key: str) -> RateLimitDecision:
        client = self._get_client()
        if not client:
            logger.warning("Rate limiter unavailable, allowing request", extra={"scope": self.scope})
            return RateLimitDecision(allowed=True, remaining=self.limit)

        redis_key = self._key(key)
        try:
            pipe = client.pipeline()
            pipe.incr(redis_key)
            pipe.ttl(redis_key)
            count, ttl = pipe.execute()
            # -1: key has no expiry yet (first hit, or an earlier EXPIRE was lost)
            if int(ttl) == -1:
                client.expire(redis_key, self.window_seconds)
                ttl = self.window_seconds
        except RedisError as e:
            logger.warning("Rate limiter error, allowing request", extra={"scope": self.scope, "error": str(e)})
            return RateLimitDecision(allowed=True, remaining=self.limit)

        count = int(count)
        if count > self.limit:
            retry_after = int(ttl) if ttl and int(ttl) > 0 else self.window_seconds
            return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)
        return RateLimitDecision(allowed=True, remaining=self.limit - count)

    def ping(self) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            return bool(client.ping())
        except RedisError:
            return False
