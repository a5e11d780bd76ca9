"""
Tests for the fallback poll
"""
import asyncio
import unittest
from unittest.mock import AsyncMock

from foodswipe.core.exceptions import AuthorizationError, NetworkError
from foodswipe.services.sync.poller import FallbackPoller


class TestFallbackPoller(unittest.IsolatedAsyncioTestCase):
    """Test cases for FallbackPoller"""

    async def asyncSetUp(self):
        self.refresh = AsyncMock()
        self.poller = FallbackPoller(self.refresh, interval=0.05, name="test")

    async def asyncTearDown(self):
        await self.poller.stop()

    async def test_polls_during_silence(self):
        self.poller.start()
        await asyncio.sleep(0.18)
        self.assertGreaterEqual(self.refresh.await_count, 2)

    async def test_pokes_postpone_poll(self):
        self.poller.start()
        for _ in range(6):
            await asyncio.sleep(0.02)
            self.poller.poke()
        self.refresh.assert_not_awaited()

    async def test_failures_keep_polling(self):
        self.refresh.side_effect = NetworkError()
        self.poller.start()
        await asyncio.sleep(0.18)
        self.assertTrue(self.poller.running)
        self.assertGreaterEqual(self.refresh.await_count, 2)

    async def test_stop(self):
        self.poller.start()
        await self.poller.stop()
        self.assertFalse(self.poller.running)

        await asyncio.sleep(0.1)
        self.refresh.assert_not_awaited()

    async def test_stop_right_after_poke(self):
        self.poller.start()
        await asyncio.sleep(0)
        self.poller.poke()

        await asyncio.wait_for(self.poller.stop(), timeout=1)

        self.assertFalse(self.poller.running)

    async def test_stop_during_burst_of_pokes(self):
        self.poller.start()
        for _ in range(20):
            self.poller.poke()
            await asyncio.sleep(0)
        self.poller.poke()
        await asyncio.wait_for(self.poller.stop(), timeout=1)
        self.assertFalse(self.poller.running)

    async def test_sign_in_required_ends_polling(self):
        failures = []
        self.poller.on_login_required = failures.append
        self.refresh.side_effect = AuthorizationError()

        self.poller.start()
        await asyncio.sleep(0.18)

        self.assertFalse(self.poller.running)
        self.assertEqual(self.refresh.await_count, 1)
        self.assertIsInstance(failures[0], AuthorizationError)

    async def test_start_twice_single_task(self):
        self.poller.start()
        task = self.poller._task
        self.poller.start()
        self.assertIs(self.poller._task, task)


if __name__ == "__main__":
    unittest.main()
