"""
Tests for the notification reconciler
"""
import unittest

from foodswipe.core.exceptions import NetworkError
from foodswipe.models.notification import NotificationType
from foodswipe.schemas.notification import Notification
from foodswipe.services.notifications.reconciler import NotificationReconciler

from fakes import make_client


class TestNotificationReconciler(unittest.IsolatedAsyncioTestCase):
    """Test cases for NotificationReconciler"""

    async def asyncSetUp(self):
        self.client = make_client()
        self.reconciler = NotificationReconciler(self.client)

    async def test_status_push_synthesized_once(self):
        payload = {"orderId": "abc123", "status": "OnTheWay"}

        first = self.reconciler.ingest_push("orderStatusUpdate", payload)
        second = self.reconciler.ingest_push("orderStatusUpdate", dict(payload))

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(len(self.reconciler.notifications), 1)
        self.assertEqual(first.type, NotificationType.STATUS)
        self.assertEqual(first.order_id, "abc123")
        self.assertIn("OnTheWay", first.message)
        self.assertTrue(first.local)

    async def test_most_recent_first(self):
        self.reconciler.ingest_push("newOrder", {"_id": "o1", "totalPrice": 500})
        self.reconciler.ingest_push("orderMessage", {"orderId": "o1", "message": "Extra ketchup"})

        records = self.reconciler.notifications
        self.assertEqual(records[0].type, NotificationType.CHAT)
        self.assertEqual(records[1].type, NotificationType.ORDER)
        self.assertEqual(self.reconciler.unread_count, 2)

    async def test_malformed_push_ignored(self):
        self.assertIsNone(self.reconciler.ingest_push("orderStatusUpdate", {"status": "Nowhere"}))
        self.assertIsNone(self.reconciler.ingest_push("dishPublished", {"_id": "d1"}))
        self.assertEqual(self.reconciler.notifications, [])

    async def test_server_notification_push_keeps_id(self):
        payload = {"_id": "n5", "title": "Payout sent", "message": "Rs. 500", "type": "payment"}
        record = self.reconciler.ingest_push("notification", payload)
        self.assertEqual(record.id, "n5")
        self.assertFalse(record.local)
        self.assertIsNone(self.reconciler.ingest_push("notification", payload))

    async def test_mark_read_is_optimistic(self):
        self.client.get_notifications.return_value = [Notification(id="n1", title="Hi")]
        self.client.mark_notification_read.side_effect = NetworkError()
        await self.reconciler.load()

        self.assertTrue(self.reconciler.mark_read("n1"))
        self.assertEqual(self.reconciler.unread_count, 0)

        await self.reconciler.wait_for_sync()
        self.client.mark_notification_read.assert_awaited_once_with("n1")
        self.assertTrue(self.reconciler.get("n1").read)

    async def test_mark_read_local_record_skips_server(self):
        record = self.reconciler.ingest_push("orderStatusUpdate", {"orderId": "o1", "status": "Ready"})
        self.reconciler.mark_read(record.id)
        await self.reconciler.wait_for_sync()
        self.client.mark_notification_read.assert_not_awaited()

    async def test_mark_all_read(self):
        self.client.get_notifications.return_value = [Notification(id="n1"), Notification(id="n2", read=True)]
        await self.reconciler.load()
        self.reconciler.ingest_push("orderStatusUpdate", {"orderId": "o1", "status": "Ready"})

        self.assertEqual(self.reconciler.mark_all_read(), 2)
        await self.reconciler.wait_for_sync()
        self.assertEqual(self.reconciler.unread_count, 0)
        self.client.mark_all_notifications_read.assert_awaited_once()

    async def test_reload_keeps_local_state(self):
        self.client.get_notifications.return_value = [Notification(id="n1")]
        await self.reconciler.load()
        self.reconciler.mark_read("n1")
        self.reconciler.ingest_push("orderStatusUpdate", {"orderId": "o1", "status": "Ready"})

        # Server has not caught up with the read flag yet
        self.client.get_notifications.return_value = [Notification(id="n1", read=False)]
        records = await self.reconciler.load()

        self.assertEqual(len(records), 2)
        self.assertTrue(self.reconciler.get("n1").read)


if __name__ == "__main__":
    unittest.main()
