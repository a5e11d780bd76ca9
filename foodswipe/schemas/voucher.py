"""Voucher schemas."""
from datetime import datetime, timezone
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from foodswipe.models.order import VoucherType
from foodswipe.schemas.base import BaseSchema


class Voucher(BaseSchema):
    """Discount code offered by a restaurant or the platform."""
    id: Optional[str] = Field(None, validation_alias=AliasChoices("_id", "id"))
    code: str
    discount: float = Field(..., ge=0)
    type: VoucherType = VoucherType.PERCENTAGE
    minimum_amount: float = Field(0, ge=0, validation_alias=AliasChoices("minimumAmount", "minOrderAmount", "minimum_amount"))
    expiry_date: Optional[datetime] = Field(None, validation_alias=AliasChoices("expiryDate", "expiresAt", "expiry_date"))
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper()

    @field_validator("minimum_amount", mode="before")
    @classmethod
    def default_minimum(cls, v):
        return 0 if v is None else v

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry_date is None:
            return False
        now = now or datetime.now(timezone.utc)
        expiry = self.expiry_date
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return expiry < now


class VoucherVerification(BaseSchema):
    """Response of the voucher verify endpoint."""
    success: bool = True
    message: Optional[str] = None
    voucher: Voucher
