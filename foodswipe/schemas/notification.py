"""Notification schemas."""
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from foodswipe.models.notification import NotificationType
from foodswipe.schemas.base import BaseSchema


class Notification(BaseSchema):
    """Notification record as held in a session's list."""
    id: str = Field(..., validation_alias=AliasChoices("_id", "id"))
    title: str = ""
    message: str = ""
    type: NotificationType = NotificationType.SYSTEM
    created_at: Optional[datetime] = None
    read: bool = Field(False, validation_alias=AliasChoices("read", "isRead", "is_read"))
    order_id: Optional[str] = None
    # Records built from a push rather than fetched over REST
    local: bool = False
