"""Unit tests for RedisRateLimiter with a mocked Redis client."""

import unittest
from unittest.mock import MagicMock, patch

from redis.exceptions import RedisError

from adapter.redis.rate_limiter import RedisRateLimiter


class TestRedisRateLimiter(unittest.TestCase):

    def setUp(self):
        self.limiter = RedisRateLimiter(limit=5, window_seconds=900)
        self.client = MagicMock()
        self.pipe = MagicMock()
        self.client.pipeline.return_value = self.pipe
        self.limiter._get_client = MagicMock(return_value=self.client)

    def test_first_hit_starts_window(self):
        self.pipe.execute.return_value = [1, -1]

        decision = self.limiter.hit('1.2.3.4')

        self.assertTrue(decision.allowed)
        self.assertEqual(decision.remaining, 4)
        self.pipe.incr.assert_called_once_with('formreg:ratelimit:login:1.2.3.4')
        self.pipe.ttl.assert_called_once_with('formreg:ratelimit:login:1.2.3.4')
        self.client.expire.assert_called_once_with('formreg:ratelimit:login:1.2.3.4', 900)

    def test_never_sends_expire_nx(self):
        self.pipe.execute.return_value = [1, -1]

        self.limiter.hit('1.2.3.4')

        self.pipe.expire.assert_not_called()
        for call in self.client.expire.call_args_list:
            self.assertNotIn('nx', call.kwargs)
            self.assertEqual(len(call.args), 2)

    def test_later_hits_keep_existing_window(self):
        self.pipe.execute.return_value = [3, 600]

        decision = self.limiter.hit('1.2.3.4')

        self.assertEqual(decision.remaining, 2)
        self.client.expire.assert_not_called()

    def test_over_limit_blocked_with_ttl(self):
        self.pipe.execute.return_value = [6, 420]

        decision = self.limiter.hit('1.2.3.4')

        self.assertFalse(decision.allowed)
        self.assertEqual(decision.retry_after, 420)

    def test_over_limit_without_ttl_uses_window(self):
        self.pipe.execute.return_value = [7, -2]
        self.assertEqual(self.limiter.hit('1.2.3.4').retry_after, 900)

    def test_fails_open_when_redis_errors(self):
        self.pipe.execute.side_effect = RedisError("boom")

        decision = self.limiter.hit('1.2.3.4')
        self.assertTrue(decision.allowed)

    def test_fails_open_when_unconfigured(self):
        self.limiter._get_client = MagicMock(return_value=None)
        self.assertTrue(self.limiter.hit('1.2.3.4').allowed)
        self.assertFalse(self.limiter.ping())

    def test_ping(self):
        self.client.ping.return_value = True
        self.assertTrue(self.limiter.ping())

    @patch('adapter.redis.rate_limiter.REDIS_URL', '')
    def test_get_client_without_url_returns_none(self):
        limiter = RedisRateLimiter(limit=5, window_seconds=900)
        self.assertIsNone(limiter._get_client())


if __name__ == '__main__':
    unittest.main()
