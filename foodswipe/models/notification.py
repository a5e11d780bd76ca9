"""Notification enumerations."""
from enum import Enum


class NotificationType(str, Enum):
    """Type tag of a notification record."""
    ORDER = "order"
    STATUS = "status"
    CHAT = "chat"
    PAYMENT = "payment"
    MILESTONE = "milestone"
    SYSTEM = "system"

    @classmethod
    def _missing_(cls, value):
        return cls.SYSTEM
