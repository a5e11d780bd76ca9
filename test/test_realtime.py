"""
Tests for the real-time channel client and the redis transport
"""
import asyncio
import json
import unittest
from unittest.mock import AsyncMock

from foodswipe.models.order import Actor
from foodswipe.services.realtime.channels import ActorIdentity, default_channels
from foodswipe.services.realtime.client import RealtimeClient
from foodswipe.services.realtime.transport import RedisChannelTransport, decode_envelope

from fakes import FakeRedis, FakeTransport

RESTAURANT = ActorIdentity(user_id="u1", role=Actor.RESTAURANT, restaurant_id="rest1")
RIDER = ActorIdentity(user_id="u2", role=Actor.RIDER)


class TestChannels(unittest.TestCase):
    """Test cases for channel naming"""

    def test_restaurant_channels(self):
        self.assertEqual(default_channels(RESTAURANT), ["user-u1", "restaurant-rest1", "public-feed"])

    def test_rider_channels(self):
        self.assertEqual(default_channels(RIDER), ["user-u2", "riders", "public-feed"])

    def test_customer_channels(self):
        self.assertEqual(default_channels(ActorIdentity("u3", Actor.CUSTOMER)), ["user-u3", "public-feed"])

    def test_decode_envelope(self):
        self.assertEqual(decode_envelope('{"event": "newOrder", "data": {"_id": "o1"}}'), ("newOrder", {"_id": "o1"}))
        self.assertIsNone(decode_envelope("not json"))
        self.assertIsNone(decode_envelope('{"data": 1}'))


class TestRealtimeClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for RealtimeClient"""

    async def asyncSetUp(self):
        self.transport = FakeTransport()
        self.client = RealtimeClient(self.transport)

    async def test_connect_subscribes_default_channels(self):
        await self.client.connect(RESTAURANT)
        self.assertTrue(self.client.connected)
        self.assertEqual(self.transport.subscribed, ["user-u1", "restaurant-rest1", "public-feed"])

    async def test_connect_is_idempotent(self):
        await self.client.connect(RESTAURANT)
        await self.client.connect(RESTAURANT)
        self.assertEqual(self.transport.connect_calls, 1)

    async def test_new_identity_reconnects(self):
        await self.client.connect(RESTAURANT)
        await self.client.connect(RIDER)
        self.assertEqual(self.transport.close_calls, 1)
        self.assertEqual(self.transport.subscribed, ["user-u2", "riders", "public-feed"])

    async def test_channel_and_global_listeners(self):
        await self.client.connect(RESTAURANT)
        scoped, everywhere = [], []
        handle = await self.client.subscribe("restaurant-rest1")
        handle.bind("newOrder", scoped.append)
        self.client.bind("newOrder", everywhere.append)

        await self.transport.push("restaurant-rest1", "newOrder", {"_id": "o1"})
        await self.transport.push("user-u1", "newOrder", {"_id": "o2"})

        self.assertEqual(scoped, [{"_id": "o1"}])
        self.assertEqual(everywhere, [{"_id": "o1"}, {"_id": "o2"}])

    async def test_async_listener_and_failing_listener(self):
        await self.client.connect(RIDER)
        received = []

        def broken(data):
            raise RuntimeError("boom")

        async def collect(data):
            received.append(data)

        self.client.bind("notification", broken)
        self.client.bind("notification", collect)
        await self.transport.push("user-u2", "notification", {"title": "hi"})

        self.assertEqual(received, [{"title": "hi"}])

    async def test_unbind(self):
        await self.client.connect(RIDER)
        received = []
        self.client.bind("newOrderAvailable", received.append)
        self.client.unbind("newOrderAvailable", received.append)
        await self.transport.push("riders", "newOrderAvailable", {})
        self.assertEqual(received, [])

    async def test_unsubscribe_stops_delivery(self):
        await self.client.connect(RIDER)
        received = []
        self.client.bind("dishPublished", received.append)
        await self.client.unsubscribe("public-feed")
        await self.transport.push("public-feed", "dishPublished", {"_id": "d1"})
        self.assertEqual(received, [])
        self.assertNotIn("public-feed", self.client.channels)

    async def test_disconnect(self):
        await self.client.connect(RIDER)
        self.client.bind("notification", print)
        await self.client.disconnect()
        self.assertFalse(self.client.connected)
        self.assertEqual(self.client.channels, set())
        self.assertEqual(self.transport.close_calls, 1)


class TestRedisChannelTransport(unittest.IsolatedAsyncioTestCase):
    """Test cases for RedisChannelTransport over a fake redis client"""

    async def asyncSetUp(self):
        self.redis = FakeRedis()
        self.transport = RedisChannelTransport(prefix="fs:", client=self.redis)
        self.received = []
        self.delivered = asyncio.Event()

        async def on_message(channel, event, data):
            self.received.append((channel, event, data))
            self.delivered.set()

        await self.transport.connect(on_message)

    async def asyncTearDown(self):
        if self.transport.connected:
            await self.transport.close()

    async def test_subscribe_uses_prefix(self):
        await self.transport.subscribe("user-u1")
        self.assertEqual(self.redis.pubsub_instance.channels, ["fs:user-u1"])

    async def test_message_reaches_handler(self):
        await self.transport.subscribe("user-u1")
        self.redis.pubsub_instance.publish("fs:user-u1", "not an envelope")
        self.redis.pubsub_instance.publish("fs:user-u1", json.dumps({"event": "notification", "data": {"title": "x"}}))

        await asyncio.wait_for(self.delivered.wait(), timeout=2)
        self.assertEqual(self.received, [("user-u1", "notification", {"title": "x"})])

    async def test_close_releases_connection(self):
        await self.transport.subscribe("riders")
        await self.transport.close()
        self.assertFalse(self.transport.connected)
        self.assertTrue(self.redis.pubsub_instance.closed)
        self.assertTrue(self.redis.closed)
        self.assertEqual(self.redis.pubsub_instance.channels, [])

    async def test_listener_starts_with_first_subscription(self):
        self.assertIsNone(self.transport._listener)
        await self.transport.subscribe("riders")
        self.assertIsNotNone(self.transport._listener)

    async def test_listener_crash_marks_disconnected(self):
        self.redis.pubsub_instance.get_message = AsyncMock(side_effect=RuntimeError("connection reset"))
        await self.transport.subscribe("riders")

        for _ in range(100):
            if not self.transport.connected:
                break
            await asyncio.sleep(0.01)

        self.assertFalse(self.transport.connected)
        self.assertTrue(self.transport._listener.done())


if __name__ == "__main__":
    unittest.main()
