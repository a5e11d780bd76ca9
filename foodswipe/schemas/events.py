"""Real-time event payload schemas.

Push payloads do not share the REST shapes, so each event is validated on its
own terms before a surface touches its state.
"""
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator

from foodswipe.models.order import OrderStatus
from foodswipe.schemas.base import BaseSchema, reference_id
from foodswipe.schemas.order import ChatMessage, Order


class EventName:
    """Event names bound on channels."""
    NEW_ORDER = "newOrder"
    NEW_ORDER_AVAILABLE = "newOrderAvailable"
    ORDER_STATUS_UPDATE = "orderStatusUpdate"
    RIDER_PICKED_UP = "riderPickedUp"
    ORDER_MESSAGE = "orderMessage"
    NOTIFICATION = "notification"
    DISH_PUBLISHED = "dishPublished"
    DISH_UPDATED = "dishUpdated"


class NewOrderEvent(BaseSchema):
    """A new order for a restaurant, or a new delivery offer for riders."""
    order: Order
    earnings: Optional[float] = None
    distance_km: Optional[float] = Field(None, validation_alias=AliasChoices("distanceKm", "distance", "distance_km"))

    @model_validator(mode="before")
    @classmethod
    def wrap_bare_order(cls, data: Any):
        if isinstance(data, dict) and "order" not in data:
            return {"order": data, "earnings": data.get("earnings"), "distanceKm": data.get("distanceKm", data.get("distance"))}
        return data


class OrderStatusEvent(BaseSchema):
    """Status change of one order; may carry the full updated order."""
    order_id: str = Field(..., validation_alias=AliasChoices("orderId", "_id", "id", "order_id"))
    status: OrderStatus
    cancellation_reason: Optional[str] = None
    rider: Optional[str] = None
    order: Optional[Order] = None

    @model_validator(mode="before")
    @classmethod
    def capture_full_order(cls, data: Any):
        if isinstance(data, dict) and "order" not in data and "_id" in data and "items" in data:
            return {**data, "order": data}
        return data

    @field_validator("order_id", "rider", mode="before")
    @classmethod
    def normalize_reference(cls, v):
        return reference_id(v)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return OrderStatus(v) if isinstance(v, str) else v


class OrderMessageEvent(BaseSchema):
    """Chat message pushed on an order's channel."""
    order_id: str
    message: ChatMessage

    @field_validator("order_id", mode="before")
    @classmethod
    def normalize_order(cls, v):
        return reference_id(v)

    @field_validator("message", mode="before")
    @classmethod
    def wrap_text(cls, v):
        if isinstance(v, str):
            return {"text": v}
        return v


class RiderPickedUpEvent(BaseSchema):
    """A rider collected the order from the restaurant."""
    order_id: str = Field(..., validation_alias=AliasChoices("orderId", "_id", "id"))
    rider: Optional[str] = None

    @field_validator("order_id", "rider", mode="before")
    @classmethod
    def normalize_reference(cls, v):
        return reference_id(v)


class NotificationEvent(BaseSchema):
    """Notification pushed to a user channel."""
    id: Optional[str] = Field(None, validation_alias=AliasChoices("_id", "id"))
    title: str = ""
    message: str = ""
    type: Optional[str] = None
    order_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class DishEvent(BaseSchema):
    """Catalog broadcast on the public feed."""
    id: str = Field(..., validation_alias=AliasChoices("_id", "id", "dishId"))
    name: str = ""
    restaurant: Optional[str] = None
    price: Optional[float] = None

    @field_validator("id", "restaurant", mode="before")
    @classmethod
    def normalize_reference(cls, v):
        return reference_id(v)
