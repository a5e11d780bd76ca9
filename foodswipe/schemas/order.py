"""Order schemas for payload validation."""
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator

from foodswipe.models.order import OPEN_STATUSES, OrderStatus, PaymentMethod
from foodswipe.schemas.base import BaseSchema, reference_id


class GeoPoint(BaseSchema):
    """Latitude/longitude pair in decimal degrees."""
    lat: float = Field(..., validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(..., validation_alias=AliasChoices("lng", "lon", "longitude"))


class OrderItem(BaseSchema):
    """One line of an order."""
    dish_id: Optional[str] = Field(None, validation_alias=AliasChoices("dish", "dishId", "dish_id", "_id"), serialization_alias="dish")
    name: str
    quantity: int = Field(1, ge=1)
    price: float = Field(0, ge=0)

    @field_validator("dish_id", mode="before")
    @classmethod
    def normalize_dish(cls, v):
        return reference_id(v)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


class Order(BaseSchema):
    """Order as returned by the backend or pushed over a channel."""
    id: str = Field(..., validation_alias=AliasChoices("_id", "id", "orderId"))
    status: OrderStatus = OrderStatus.PENDING
    items: List[OrderItem] = Field(default_factory=list)
    subtotal: float = 0
    delivery_fee: float = 0
    service_fee: float = 0
    tax: float = 0
    total_amount: float = Field(0, validation_alias=AliasChoices("totalAmount", "totalPrice", "total_amount", "total"))
    payment_method: Optional[PaymentMethod] = None
    delivery_address: str = ""
    delivery_location: Optional[GeoPoint] = None
    rider: Optional[str] = None
    restaurant: Optional[str] = None
    customer: Optional[str] = Field(None, validation_alias=AliasChoices("user", "customer"))
    cancellation_reason: Optional[str] = None
    distance_km: Optional[float] = None
    rider_earning: Optional[float] = Field(None, validation_alias=AliasChoices("netRiderEarning", "riderEarning", "earnings", "rider_earning"))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v):
        return reference_id(v)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return OrderStatus(v) if isinstance(v, str) else v

    @field_validator("payment_method", mode="before")
    @classmethod
    def coerce_payment_method(cls, v):
        return PaymentMethod(v) if isinstance(v, str) else v

    @field_validator("rider", "restaurant", "customer", mode="before")
    @classmethod
    def normalize_reference(cls, v):
        return reference_id(v)

    @field_validator("delivery_address", mode="before")
    @classmethod
    def flatten_address(cls, v):
        """Older orders store the address as a document."""
        if v is None:
            return ""
        if isinstance(v, dict):
            parts = [str(v[key]) for key in ("street", "address", "city", "postalCode", "country") if v.get(key)]
            return ", ".join(parts)
        return v

    @field_validator("delivery_location", mode="before")
    @classmethod
    def drop_empty_location(cls, v):
        if isinstance(v, dict) and (v.get("lat") is None or v.get("lng") is None):
            return None
        return v

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def with_status(self, status: OrderStatus) -> "Order":
        return self.model_copy(update={"status": status})


class OrderCreate(BaseSchema):
    """Checkout mutation body."""
    restaurant: str
    items: List[OrderItem]
    delivery_address: str
    city: Optional[str] = None
    delivery_location: Optional[GeoPoint] = None
    subtotal: float
    delivery_fee: float
    service_fee: float = 0
    tax: float = 0
    total_amount: float
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    delivery_instructions: Optional[str] = None
    promo_code: str = ""

    @field_validator("delivery_address")
    @classmethod
    def require_address(cls, v):
        if not v or not v.strip():
            raise ValueError("Delivery address cannot be empty")
        return v.strip()


class StatusUpdate(BaseSchema):
    """Body of a status mutation."""
    status: OrderStatus
    cancellation_reason: Optional[str] = None
    prep_time: Optional[int] = None


class ChatMessage(BaseSchema):
    """Message exchanged on an order's chat."""
    id: Optional[str] = Field(None, validation_alias=AliasChoices("_id", "id"))
    order_id: Optional[str] = None
    sender: Optional[str] = None
    sender_role: Optional[str] = None
    text: str = Field("", validation_alias=AliasChoices("text", "message", "content"))
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("createdAt", "timestamp", "created_at"))

    @field_validator("sender", mode="before")
    @classmethod
    def normalize_sender(cls, v):
        return reference_id(v)
