"""Restaurant dashboard schemas."""
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator

from foodswipe.schemas.base import BaseSchema
from foodswipe.schemas.order import GeoPoint


class Restaurant(BaseSchema):
    """Restaurant profile as fetched for the dashboard and fee calculation."""
    id: str = Field(..., validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    address: Optional[str] = None
    location: Optional[GeoPoint] = None
    is_active: bool = True

    @field_validator("location", mode="before")
    @classmethod
    def parse_location(cls, v: Any):
        """Accept {lat, lng} or GeoJSON {coordinates: [lng, lat]}."""
        if isinstance(v, dict) and "coordinates" in v:
            coordinates = v.get("coordinates") or []
            if len(coordinates) < 2:
                return None
            return {"lat": coordinates[1], "lng": coordinates[0]}
        if isinstance(v, dict) and (v.get("lat") is None or v.get("lng") is None):
            return None
        return v


class DashboardStats(BaseSchema):
    """Headline numbers of the restaurant overview."""
    total_orders: int = 0
    pending_orders: int = 0
    today_orders: int = 0
    total_revenue: float = Field(0, validation_alias=AliasChoices("totalRevenue", "revenue", "total_revenue"))
    today_revenue: float = 0
    average_rating: Optional[float] = None
