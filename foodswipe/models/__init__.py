"""
Models package for FoodSwipe.
Contains enumerations and status sets shared across schemas and services.
"""

from foodswipe.models.order import (
    OPEN_STATUSES,
    TERMINAL_STATUSES,
    Actor,
    OrderStatus,
    PaymentMethod,
    VoucherType,
)
from foodswipe.models.notification import NotificationType

__all__ = [
    'OrderStatus', 'Actor', 'PaymentMethod', 'VoucherType',
    'OPEN_STATUSES', 'TERMINAL_STATUSES',
    'NotificationType',
]
