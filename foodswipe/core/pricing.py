"""Distance, delivery fee, checkout and rider earnings arithmetic.

All amounts are currency-agnostic units. Distances are kilometers rounded to
one decimal, the precision shown to actors.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from foodswipe.config.settings import Settings, settings as default_settings
from foodswipe.models.order import VoucherType
from foodswipe.schemas.order import GeoPoint
from foodswipe.schemas.rider import EarningsSummary
from foodswipe.schemas.voucher import Voucher

EARTH_RADIUS_KM = 6371.0
# Coordinates closer than this to (0, 0) are an unset default, not a place
NULL_ISLAND_EPSILON = 1e-4


class DistanceStatus(str, Enum):
    OK = "ok"
    LOCATION_NOT_SET = "location_not_set"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class DistanceResult:
    """Outcome of measuring a delivery distance."""
    status: DistanceStatus
    km: Optional[float] = None

    @property
    def is_known(self) -> bool:
        return self.status == DistanceStatus.OK

    @property
    def label(self) -> str:
        if self.status == DistanceStatus.LOCATION_NOT_SET:
            return "Location not set"
        if self.status == DistanceStatus.UNAVAILABLE:
            return "Distance unavailable"
        return f"{self.km:.1f} km"


@dataclass(frozen=True)
class FeeSettings:
    """Fee parameters; the backend's public settings override local defaults."""
    base: float = 40
    per_km: float = 20
    max_fee: float = 100
    service_fee: float = 0
    tax_enabled: bool = False
    tax_rate: float = 8
    max_sane_distance_km: float = 1000

    @classmethod
    def from_settings(cls, config: Settings = None) -> "FeeSettings":
        config = config or default_settings
        return cls(
            base=config.DELIVERY_FEE_BASE,
            per_km=config.DELIVERY_FEE_PER_KM,
            max_fee=config.DELIVERY_FEE_MAX,
            service_fee=config.SERVICE_FEE,
            tax_enabled=config.TAX_ENABLED,
            tax_rate=config.TAX_RATE,
            max_sane_distance_km=config.MAX_SANE_DISTANCE_KM,
        )

    def merged_with(self, remote: Dict[str, Any]) -> "FeeSettings":
        """Overlay values from the backend's ``/api/settings`` payload."""
        def pick(key: str, current):
            value = remote.get(key)
            return current if value is None else value

        return FeeSettings(
            base=float(pick("deliveryFeeBase", self.base)),
            per_km=float(pick("deliveryFeePerKm", self.per_km)),
            max_fee=float(pick("deliveryFeeMax", self.max_fee)),
            service_fee=float(pick("serviceFee", self.service_fee)),
            tax_enabled=remote.get("isTaxEnabled") is True if "isTaxEnabled" in remote else self.tax_enabled,
            tax_rate=float(pick("taxRate", self.tax_rate)),
            max_sane_distance_km=self.max_sane_distance_km,
        )


@dataclass(frozen=True)
class CheckoutQuote:
    """Totals shown at checkout."""
    subtotal: float
    delivery_fee: float
    service_fee: float
    tax: float
    discount: float
    total: float
    distance: DistanceResult


def is_unset(point: Optional[GeoPoint]) -> bool:
    if point is None:
        return True
    return abs(point.lat) < NULL_ISLAND_EPSILON and abs(point.lng) < NULL_ISLAND_EPSILON


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return round(EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h)), 1)


def measure_distance(a: Optional[GeoPoint], b: Optional[GeoPoint], max_sane_km: float = 1000) -> DistanceResult:
    """Distance between two points, guarding unset and implausible inputs."""
    if is_unset(a) or is_unset(b):
        return DistanceResult(DistanceStatus.LOCATION_NOT_SET)

    km = haversine_km(a, b)
    if km > max_sane_km:
        # Usually latitude and longitude swapped somewhere upstream
        return DistanceResult(DistanceStatus.UNAVAILABLE)
    return DistanceResult(DistanceStatus.OK, km)


def delivery_fee(distance: DistanceResult, fees: FeeSettings) -> float:
    """Capped linear fee; unknown distance pays the base fee only."""
    if not distance.is_known:
        return min(fees.max_fee, fees.base)
    return round(min(fees.max_fee, fees.base + distance.km * fees.per_km), 2)


def voucher_discount(subtotal: float, voucher: Optional[Voucher]) -> float:
    """Discount granted by ``voucher``; zero when its minimum is not met."""
    if voucher is None or subtotal <= 0:
        return 0
    if voucher.minimum_amount and subtotal < voucher.minimum_amount:
        return 0
    if voucher.type == VoucherType.FIXED:
        return min(subtotal, voucher.discount)
    return round(subtotal * min(voucher.discount, 100) / 100, 2)


def tax_amount(subtotal: float, fees: FeeSettings) -> float:
    if not fees.tax_enabled:
        return 0
    return round(subtotal * fees.tax_rate / 100, 2)


def quote_checkout(
    subtotal: float,
    distance: DistanceResult,
    fees: FeeSettings,
    voucher: Optional[Voucher] = None,
) -> CheckoutQuote:
    """Compute every checkout line and the payable total."""
    fee = delivery_fee(distance, fees)
    tax = tax_amount(subtotal, fees)
    discount = voucher_discount(subtotal, voucher)
    total = max(0, subtotal + fee + tax + fees.service_fee - discount)
    return CheckoutQuote(
        subtotal=subtotal,
        delivery_fee=fee,
        service_fee=fees.service_fee,
        tax=tax,
        discount=discount,
        total=round(total, 2),
        distance=distance,
    )


def rider_earning(
    distance_km: float,
    base_pay: float = 40,
    per_km_rate: float = 20,
    order_id: Optional[str] = None,
    estimated: bool = False,
) -> EarningsSummary:
    """Base pay plus distance pay; no platform fee is deducted."""
    distance_pay = round(distance_km * per_km_rate, 2)
    return EarningsSummary(
        order_id=order_id,
        distance_km=distance_km,
        base_pay=base_pay,
        per_km_rate=per_km_rate,
        distance_pay=distance_pay,
        total=round(base_pay + distance_pay, 2),
        estimated=estimated,
    )
