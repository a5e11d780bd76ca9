"""
Schemas package for FoodSwipe.

Pydantic models validating every external payload before it enters core state:
- base: base schema and the parse helpers
- order: orders, items, status mutations, chat messages
- voucher: voucher codes
- notification: notification records
- events: real-time event payloads
- rider: wallet, earnings and payouts
- restaurant: restaurant profile and dashboard stats
"""

from foodswipe.schemas.base import BaseSchema, parse_list, parse_payload
from foodswipe.schemas.order import ChatMessage, GeoPoint, Order, OrderCreate, OrderItem, StatusUpdate
from foodswipe.schemas.voucher import Voucher, VoucherVerification
from foodswipe.schemas.notification import Notification
from foodswipe.schemas.events import (
    DishEvent,
    EventName,
    NewOrderEvent,
    NotificationEvent,
    OrderMessageEvent,
    OrderStatusEvent,
    RiderPickedUpEvent,
)
from foodswipe.schemas.rider import EarningsSummary, PayoutRecord, RiderEarnings, RiderProfile
from foodswipe.schemas.restaurant import DashboardStats, Restaurant

__all__ = [
    "BaseSchema", "parse_payload", "parse_list",
    "GeoPoint", "Order", "OrderItem", "OrderCreate", "StatusUpdate", "ChatMessage",
    "Voucher", "VoucherVerification",
    "Notification",
    "EventName", "NewOrderEvent", "OrderStatusEvent", "OrderMessageEvent",
    "RiderPickedUpEvent", "NotificationEvent", "DishEvent",
    "RiderProfile", "RiderEarnings", "EarningsSummary", "PayoutRecord",
    "Restaurant", "DashboardStats",
]
