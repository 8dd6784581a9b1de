"""Unit tests for InMemoryRateLimiter."""

import threading
import unittest

from adapter.memory.rate_limiter import InMemoryRateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestInMemoryRateLimiter(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = InMemoryRateLimiter(limit=5, window_seconds=900, clock=self.clock)

    def test_allows_up_to_limit(self):
        decisions = [self.limiter.hit('1.2.3.4') for _ in range(5)]

        self.assertTrue(all(d.allowed for d in decisions))
        self.assertEqual([d.remaining for d in decisions], [4, 3, 2, 1, 0])

    def test_sixth_attempt_blocked_with_retry_after(self):
        for _ in range(5):
            self.limiter.hit('1.2.3.4')
        self.clock.now += 60

        decision = self.limiter.hit('1.2.3.4')

        self.assertFalse(decision.allowed)
        self.assertEqual(decision.retry_after, 840)

    def test_keys_are_independent(self):
        for _ in range(5):
            self.limiter.hit('1.2.3.4')
        self.assertTrue(self.limiter.hit('5.6.7.8').allowed)

    def test_window_slides(self):
        for _ in range(5):
            self.limiter.hit('1.2.3.4')
        self.clock.now += 901
        self.assertTrue(self.limiter.hit('1.2.3.4').allowed)

    def test_blocked_attempts_do_not_extend_window(self):
        for _ in range(5):
            self.limiter.hit('1.2.3.4')
        for _ in range(10):
            self.limiter.hit('1.2.3.4')
        self.clock.now += 901
        self.assertTrue(self.limiter.hit('1.2.3.4').allowed)

    def test_reset(self):
        for _ in range(5):
            self.limiter.hit('1.2.3.4')
        self.limiter.reset('1.2.3.4')
        self.assertTrue(self.limiter.hit('1.2.3.4').allowed)

    def test_concurrent_hits_never_exceed_limit(self):
        limiter = InMemoryRateLimiter(limit=5, window_seconds=900)
        results = []
        lock = threading.Lock()

        def worker():
            decision = limiter.hit('shared')
            with lock:
                results.append(decision.allowed)

        threads = [threading.Thread(target=worker) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sum(results), 5)

    def test_expired_addresses_are_forgotten(self):
        for i in range(10_000):
            self.limiter.hit(f'10.0.{i // 256}.{i % 256}')
        self.clock.now += 901

        self.limiter.hit('1.2.3.4')

        self.assertEqual(len(self.limiter._hits), 1)

    def test_active_addresses_survive_sweep(self):
        for _ in range(5):
            self.limiter.hit('1.2.3.4')
        self.clock.now += 600
        self.limiter.hit('5.6.7.8')
        self.clock.now += 400

        self.limiter.hit('9.9.9.9')

        self.assertNotIn('1.2.3.4', self.limiter._hits)
        self.assertIn('5.6.7.8', self.limiter._hits)
        self.assertEqual(len(self.limiter._hits), 2)

    def test_ping(self):
        self.assertTrue(self.limiter.ping())


if __name__ == '__main__':
    unittest.main()
