"""
Tests for the payload validation boundary
"""
import unittest
from datetime import datetime, timedelta, timezone

from foodswipe.core.exceptions import PayloadError
from foodswipe.models.order import OrderStatus, PaymentMethod
from foodswipe.schemas import (
    NewOrderEvent,
    Order,
    OrderCreate,
    OrderItem,
    OrderMessageEvent,
    OrderStatusEvent,
    Restaurant,
    Voucher,
    parse_list,
    parse_payload,
)


class TestOrderSchema(unittest.TestCase):
    """Test cases for order payloads"""

    def test_backend_shape(self):
        order = Order.model_validate({
            "_id": "abc123",
            "status": "Confirmed",
            "items": [{"dish": {"_id": "d1", "name": "Burger"}, "name": "Burger", "quantity": 2, "price": 250}],
            "totalPrice": 580,
            "paymentMethod": "COD",
            "user": {"_id": "u1", "name": "Ali"},
            "rider": "r1",
            "deliveryAddress": {"street": "12 Mall Road", "city": "Lahore"},
            "deliveryLocation": {},
        })

        self.assertEqual(order.id, "abc123")
        self.assertEqual(order.status, OrderStatus.ACCEPTED)
        self.assertEqual(order.items[0].dish_id, "d1")
        self.assertEqual(order.items[0].line_total, 500)
        self.assertEqual(order.total_amount, 580)
        self.assertEqual(order.payment_method, PaymentMethod.CASH_ON_DELIVERY)
        self.assertEqual(order.customer, "u1")
        self.assertEqual(order.delivery_address, "12 Mall Road, Lahore")
        self.assertIsNone(order.delivery_location)
        self.assertTrue(order.is_open)

    def test_unknown_status_rejected(self):
        with self.assertRaises(PayloadError):
            parse_payload(Order, {"_id": "x", "status": "Teleported"}, "order")

    def test_parse_list_skips_malformed(self):
        orders = parse_list(Order, {"orders": [{"_id": "a"}, {"status": "Pending"}, {"_id": "b"}]}, "orders")
        self.assertEqual([o.id for o in orders], ["a", "b"])

    def test_parse_list_rejects_non_list(self):
        with self.assertRaises(PayloadError):
            parse_list(Order, "nope", "orders")

    def test_order_create_payload(self):
        body = OrderCreate(
            restaurant="rest1",
            items=[OrderItem(dish_id="d1", name="Burger", quantity=1, price=500)],
            delivery_address="  House 5, Gulberg  ",
            subtotal=500,
            delivery_fee=80,
            total_amount=580,
        )
        payload = body.to_payload()

        self.assertEqual(payload["deliveryAddress"], "House 5, Gulberg")
        self.assertEqual(payload["totalAmount"], 580)
        self.assertEqual(payload["paymentMethod"], "cod")
        self.assertEqual(payload["items"][0]["dish"], "d1")

    def test_order_create_requires_address(self):
        with self.assertRaises(ValueError):
            OrderCreate(restaurant="r", items=[], delivery_address="   ", subtotal=0, delivery_fee=0, total_amount=0)


class TestEventSchemas(unittest.TestCase):
    """Test cases for real-time payloads"""

    def test_status_event_with_full_order(self):
        event = OrderStatusEvent.model_validate({"_id": "o1", "status": "Delivered", "items": [], "totalPrice": 100})
        self.assertEqual(event.order_id, "o1")
        self.assertEqual(event.status, OrderStatus.DELIVERED)
        self.assertIsNotNone(event.order)
        self.assertEqual(event.order.total_amount, 100)

    def test_status_event_minimal(self):
        event = OrderStatusEvent.model_validate({"orderId": "o1", "status": "Picked Up", "rider": {"_id": "r9"}})
        self.assertEqual(event.status, OrderStatus.PICKED_UP)
        self.assertEqual(event.rider, "r9")
        self.assertIsNone(event.order)

    def test_new_order_event_bare_order(self):
        event = NewOrderEvent.model_validate({"_id": "o2", "status": "Pending", "earnings": 110, "distanceKm": 3.5})
        self.assertEqual(event.order.id, "o2")
        self.assertEqual(event.earnings, 110)
        self.assertEqual(event.distance_km, 3.5)

    def test_message_event_plain_text(self):
        event = OrderMessageEvent.model_validate({"orderId": "o1", "message": "At the gate"})
        self.assertEqual(event.message.text, "At the gate")


class TestOtherSchemas(unittest.TestCase):
    """Test cases for vouchers and restaurants"""

    def test_voucher_normalized(self):
        voucher = Voucher.model_validate({"_id": "v1", "code": " save10 ", "discount": 10, "minimumAmount": None})
        self.assertEqual(voucher.code, "SAVE10")
        self.assertEqual(voucher.minimum_amount, 0)

    def test_voucher_expiry(self):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        self.assertTrue(Voucher(code="OLD", discount=5, expiry_date=past).is_expired())
        self.assertFalse(Voucher(code="NEW", discount=5, expiry_date=past + timedelta(days=3)).is_expired())
        self.assertFalse(Voucher(code="FOREVER", discount=5).is_expired())

    def test_restaurant_geojson_location(self):
        restaurant = Restaurant.model_validate({"_id": "r1", "name": "Zinger", "location": {"type": "Point", "coordinates": [74.35, 31.52]}})
        self.assertEqual(restaurant.location.lat, 31.52)
        self.assertEqual(restaurant.location.lng, 74.35)


if __name__ == "__main__":
    unittest.main()
