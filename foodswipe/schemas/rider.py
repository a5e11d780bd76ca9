"""Rider schemas: wallet, earnings and payouts."""
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from foodswipe.schemas.base import BaseSchema


class RiderProfile(BaseSchema):
    """Subset of the rider document the dashboard renders."""
    id: str = Field(..., validation_alias=AliasChoices("_id", "id"))
    is_online: bool = False
    wallet_balance: float = Field(0, validation_alias=AliasChoices("walletBalance", "wallet", "balance", "wallet_balance"))
    cod_balance: float = 0
    status: Optional[str] = None

    @property
    def is_suspended(self) -> bool:
        return self.status == "suspended"


class RiderEarnings(BaseSchema):
    """Aggregated earnings reported by the backend."""
    total: float = 0
    today: float = 0
    this_week: float = 0
    base_pay: float = 0
    tips: float = 0
    bonuses: float = 0
    deliveries: int = 0
    pending_payout: float = 0


class EarningsSummary(BaseSchema):
    """Breakdown shown to the rider after a delivery."""
    order_id: Optional[str] = None
    distance_km: float
    base_pay: float
    per_km_rate: float
    distance_pay: float
    total: float
    # True when computed locally because the server had not reported a figure
    estimated: bool = False


class PayoutRecord(BaseSchema):
    """One entry of payout or payment history."""
    id: str = Field(..., validation_alias=AliasChoices("_id", "id"))
    amount: float = 0
    status: str = "pending"
    method: Optional[str] = None
    created_at: Optional[datetime] = None
