"""Order enumerations shared by every surface."""
from enum import Enum


class OrderStatus(str, Enum):
    """Order status enumeration, values as they appear on the wire."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    PREPARING = "Preparing"
    READY = "Ready"
    ON_THE_WAY = "OnTheWay"
    ARRIVED = "Arrived"
    PICKED_UP = "Picked Up"
    ARRIVED_AT_CUSTOMER = "ArrivedAtCustomer"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value):
        # Rider assignment is reported as "Confirmed"; same state as Accepted.
        if isinstance(value, str):
            normalized = value.strip().replace("_", "").replace(" ", "").lower()
            if normalized == "confirmed":
                return cls.ACCEPTED
            for member in cls:
                if member.value.replace(" ", "").lower() == normalized:
                    return member
        return None


class Actor(str, Enum):
    """Roles allowed to act on an order."""
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"
    RIDER = "rider"
    SYSTEM = "system"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    CARD = "card"
    CASH_ON_DELIVERY = "cod"
    JAZZCASH = "jazzcash"
    EASYPAISA = "easypaisa"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class VoucherType(str, Enum):
    """How a voucher's discount value is interpreted."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


OPEN_STATUSES = frozenset({
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.ON_THE_WAY,
    OrderStatus.ARRIVED,
    OrderStatus.PICKED_UP,
    OrderStatus.ARRIVED_AT_CUSTOMER,
})

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
