"""
Tests for the restaurant dashboard
"""
import asyncio
import unittest

from foodswipe.core.exceptions import AuthorizationError, NetworkError
from foodswipe.models.order import Actor, OrderStatus
from foodswipe.schemas.restaurant import DashboardStats, Restaurant
from foodswipe.services.notifications.reconciler import NotificationReconciler
from foodswipe.services.realtime.client import RealtimeClient
from foodswipe.services.restaurant.dashboard import RestaurantDashboard

from fakes import FakeTransport, make_client, make_order, make_session

CHANNEL = "restaurant-rest1"


class TestRestaurantDashboard(unittest.IsolatedAsyncioTestCase):
    """Test cases for RestaurantDashboard"""

    async def asyncSetUp(self):
        self.client = make_client()
        self.client.get_my_restaurant.return_value = Restaurant(id="rest1", name="Zinger House")
        self.client.get_dashboard_stats.return_value = DashboardStats(total_orders=3)
        self.client.get_restaurant_orders.return_value = []

        self.transport = FakeTransport()
        session = make_session(Actor.RESTAURANT, user_id="owner1", restaurant_id="rest1")
        self.dashboard = RestaurantDashboard(
            self.client,
            session,
            RealtimeClient(self.transport),
            reconciler=NotificationReconciler(self.client),
            poll_interval=60,
            countdown_seconds=0.05,
        )
        await self.dashboard.start()

    async def asyncTearDown(self):
        await self.dashboard.stop()

    async def push_new_order(self, order_id="o9"):
        await self.transport.push(CHANNEL, "newOrder", {"_id": order_id, "status": "Pending", "totalPrice": 1200})

    async def test_started_on_restaurant_channel(self):
        self.assertIn(CHANNEL, self.transport.subscribed)
        self.assertEqual(self.dashboard.restaurant.name, "Zinger House")
        self.assertEqual(self.dashboard.stats.total_orders, 3)

    async def test_new_order_opens_prompt(self):
        await self.push_new_order()

        self.assertIn("o9", self.dashboard.prompts)
        self.assertEqual(self.dashboard.book.get("o9").status, OrderStatus.PENDING)
        self.assertEqual(self.dashboard.reconciler.unread_count, 1)

    async def test_duplicate_push_single_prompt(self):
        await self.push_new_order()
        prompt = self.dashboard.prompts["o9"]
        await self.push_new_order()
        self.assertIs(self.dashboard.prompts["o9"], prompt)
        self.assertEqual(len(self.dashboard.reconciler.notifications), 1)

    async def test_prompt_expires_without_cancelling(self):
        await self.push_new_order()
        await asyncio.sleep(0.2)

        self.assertNotIn("o9", self.dashboard.prompts)
        self.assertEqual(self.dashboard.book.get("o9").status, OrderStatus.PENDING)
        self.client.update_order_status.assert_not_awaited()

    async def test_accept_stops_countdown(self):
        await self.push_new_order()
        prompt = self.dashboard.prompts["o9"]
        self.client.update_order_status.return_value = make_order("o9", "Accepted")

        result = await self.dashboard.accept("o9")
        await asyncio.sleep(0.01)

        self.assertTrue(result.success)
        self.assertNotIn("o9", self.dashboard.prompts)
        self.assertFalse(prompt.active)
        self.assertFalse(prompt.expired)
        self.assertEqual(self.client.get_restaurant_orders.await_count, 2)

    async def test_failed_accept_keeps_prompt(self):
        await self.push_new_order()
        prompt = self.dashboard.prompts["o9"]
        self.client.update_order_status.side_effect = NetworkError()

        result = await self.dashboard.accept("o9")

        self.assertFalse(result.success)
        self.assertIs(self.dashboard.prompts["o9"], prompt)
        self.assertTrue(prompt.active)
        self.assertEqual(self.dashboard.book.get("o9").status, OrderStatus.PENDING)

    async def test_zero_countdown_kept(self):
        session = make_session(Actor.RESTAURANT, user_id="owner1", restaurant_id="rest1")
        dashboard = RestaurantDashboard(self.client, session, RealtimeClient(FakeTransport()), countdown_seconds=0)
        self.assertEqual(dashboard.countdown_seconds, 0)

    async def test_sign_in_required_after_push_stops_polling(self):
        self.client.get_restaurant_orders.side_effect = AuthorizationError()

        await self.transport.push(CHANNEL, "orderStatusUpdate", {"orderId": "o1", "status": "Accepted"})

        self.assertTrue(self.dashboard.requires_login)
        self.assertFalse(self.dashboard.poller.running)

    async def test_status_push_never_regresses(self):
        self.client.get_restaurant_orders.return_value = [make_order("o1", "Pending")]
        await self.dashboard.refresh()

        await self.transport.push(CHANNEL, "orderStatusUpdate", {"orderId": "o1", "status": "Cancelled"})

        # The re-fetch after the push still reports Pending
        self.assertEqual(self.dashboard.book.get("o1").status, OrderStatus.CANCELLED)

    async def test_rider_picked_up_push(self):
        self.client.get_restaurant_orders.return_value = [make_order("o1", "Ready")]
        await self.dashboard.refresh()

        await self.transport.push(CHANNEL, "riderPickedUp", {"orderId": "o1", "rider": "r1"})

        self.assertEqual(self.dashboard.book.get("o1").status, OrderStatus.PICKED_UP)

    async def test_order_message_push(self):
        await self.transport.push(CHANNEL, "orderMessage", {"orderId": "o1", "message": {"text": "Where is my food?"}})
        self.assertEqual(self.dashboard.messages["o1"][0].text, "Where is my food?")

    async def test_redelivered_message_shown_once(self):
        payload = {"orderId": "o1", "message": {"_id": "m1", "text": "Where is my food?"}}
        await self.transport.push(CHANNEL, "orderMessage", payload)
        await self.transport.push(CHANNEL, "orderMessage", payload)
        await self.transport.push(CHANNEL, "orderMessage", {"orderId": "o1", "message": {"_id": "m2", "text": "Where is my food?"}})

        self.assertEqual([m.id for m in self.dashboard.messages["o1"]], ["m1", "m2"])
        self.assertEqual(len(self.dashboard.reconciler.notifications), 2)

    async def test_redelivered_message_without_id_shown_once(self):
        message = {"sender": "user1", "text": "Extra ketchup", "createdAt": "2024-05-01T12:00:00Z"}
        await self.transport.push(CHANNEL, "orderMessage", {"orderId": "o1", "message": message})
        await self.transport.push(CHANNEL, "orderMessage", {"orderId": "o1", "message": message})

        self.assertEqual(len(self.dashboard.messages["o1"]), 1)

    async def test_overview_isolates_failures(self):
        self.client.get_my_restaurant.return_value = Restaurant(id="rest1", name="Zinger House 2")
        self.client.get_dashboard_stats.side_effect = NetworkError()

        results = await self.dashboard.load_overview()

        self.assertIsNone(results["stats"])
        self.assertEqual(self.dashboard.restaurant.name, "Zinger House 2")
        self.assertEqual(self.dashboard.stats.total_orders, 3)

    async def test_overview_authorization_failure_raises(self):
        self.client.get_my_restaurant.side_effect = AuthorizationError()
        with self.assertRaises(AuthorizationError):
            await self.dashboard.load_overview()

    async def test_unknown_order_command(self):
        result = await self.dashboard.mark_ready("missing")
        self.assertFalse(result.success)


if __name__ == "__main__":
    unittest.main()
