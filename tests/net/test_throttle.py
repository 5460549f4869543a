"""
Tests for src/backend/net/throttle.py

Covers:
- ThrottleConfig defaults and persistence
- Minimum interval between consecutive requests
- Disabled throttle behavior
"""

import asyncio
import time
import unittest

from src.backend.net.throttle import Throttle, ThrottleConfig


class TestThrottleConfig(unittest.TestCase):
    """Tests for ThrottleConfig."""

    def test_default_values(self):
        """Default config spaces requests by 0.8s plus up to 0.2s jitter."""
        config = ThrottleConfig()
        self.assertEqual(config.min_interval_s, 0.8)
        self.assertEqual(config.jitter_max_s, 0.2)
        self.assertTrue(config.enabled)

    def test_persist_round_trip(self):
        config = ThrottleConfig(min_interval_s=2.0, jitter_max_s=0.5, enabled=False)
        restored = ThrottleConfig.from_persist_dict(config.to_persist_dict())
        self.assertEqual(restored, config)

    def test_from_persist_dict_with_invalid_values(self):
        """Invalid values fall back to defaults."""
        config = ThrottleConfig.from_persist_dict({"min_interval_s": "invalid", "jitter_max_s": None})
        self.assertEqual(config.min_interval_s, 0.8)
        self.assertEqual(config.jitter_max_s, 0.2)

    def test_from_persist_dict_negative_clipped_to_zero(self):
        config = ThrottleConfig.from_persist_dict({"min_interval_s": -5.0, "jitter_max_s": -1.0})
        self.assertEqual(config.min_interval_s, 0.0)
        self.assertEqual(config.jitter_max_s, 0.0)


class TestThrottle(unittest.TestCase):
    """Tests for Throttle.wait_async."""

    def test_first_request_only_jitter(self):
        """First request should only add jitter, not min_interval."""

        async def run_test():
            throttle = Throttle(ThrottleConfig(min_interval_s=10.0, jitter_max_s=0.05))
            start = time.monotonic()
            await throttle.wait_async()
            return time.monotonic() - start

        self.assertLess(asyncio.run(run_test()), 1.0)

    def test_subsequent_request_respects_min_interval(self):
        async def run_test():
            throttle = Throttle(ThrottleConfig(min_interval_s=0.1, jitter_max_s=0.0))
            await throttle.wait_async()
            start = time.monotonic()
            await throttle.wait_async()
            return time.monotonic() - start, throttle.waits

        elapsed, waits = asyncio.run(run_test())
        self.assertGreaterEqual(elapsed, 0.09)  # Allow small tolerance
        self.assertEqual(waits, 2)

    def test_disabled_throttle_no_wait(self):
        async def run_test():
            throttle = Throttle(ThrottleConfig(min_interval_s=10.0, jitter_max_s=5.0, enabled=False))
            start = time.monotonic()
            for _ in range(3):
                await throttle.wait_async()
            return time.monotonic() - start

        self.assertLess(asyncio.run(run_test()), 0.05)

    def test_reset(self):
        """Reset should clear last request time."""

        async def run_test():
            throttle = Throttle(ThrottleConfig(min_interval_s=10.0, jitter_max_s=0.0))
            await throttle.wait_async()
            throttle.reset()
            start = time.monotonic()
            await throttle.wait_async()
            return time.monotonic() - start

        self.assertLess(asyncio.run(run_test()), 1.0)


if __name__ == "__main__":
    unittest.main()
