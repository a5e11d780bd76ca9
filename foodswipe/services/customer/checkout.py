"""
Checkout session: cart, delivery location, fees, vouchers and placement.

Voucher rules:
- A code the customer applies is checked locally (active, not expired,
  minimum met) and verified by the backend; any failure is an error, never
  a silently smaller discount.
- The best eligible voucher is applied automatically only while the customer
  has not chosen one; a customer's choice is never replaced.
"""
import logging
from typing import Iterable, List, Optional

from foodswipe.core.exceptions import AuthorizationError, FoodSwipeError, MissingCredentialsError, VoucherRejectedError
from foodswipe.core.pricing import (
    CheckoutQuote,
    DistanceResult,
    FeeSettings,
    measure_distance,
    quote_checkout,
    voucher_discount,
)
from foodswipe.models.order import PaymentMethod
from foodswipe.schemas.order import GeoPoint, OrderItem
from foodswipe.schemas.voucher import Voucher
from foodswipe.services.backend.client import BackendClient
from foodswipe.services.orders.dispatcher import ActionResult, OrderActionDispatcher

logger = logging.getLogger(__name__)


def check_voucher(voucher: Voucher, subtotal: float) -> None:
    """Raise VoucherRejectedError when ``voucher`` cannot apply to ``subtotal``."""
    if not voucher.is_active:
        raise VoucherRejectedError("This voucher is no longer active.")
    if voucher.is_expired():
        raise VoucherRejectedError("This voucher has expired.")
    if voucher.minimum_amount and subtotal < voucher.minimum_amount:
        raise VoucherRejectedError(f"Minimum order amount for this voucher is Rs. {voucher.minimum_amount:g}.")


def is_eligible(voucher: Voucher, subtotal: float) -> bool:
    try:
        check_voucher(voucher, subtotal)
    except VoucherRejectedError:
        return False
    return True


class CheckoutSession:
    """One customer's checkout for one restaurant."""

    def __init__(
        self,
        client: BackendClient,
        dispatcher: OrderActionDispatcher,
        restaurant_id: str,
        fees: Optional[FeeSettings] = None,
    ):
        self.client = client
        self.dispatcher = dispatcher
        self.restaurant_id = restaurant_id
        self.fees = fees or FeeSettings.from_settings()
        self.items: List[OrderItem] = []
        self.delivery_address = ""
        self.city: Optional[str] = None
        self.delivery_location: Optional[GeoPoint] = None
        self.restaurant_location: Optional[GeoPoint] = None
        self.payment_method = PaymentMethod.CASH_ON_DELIVERY
        self.instructions: Optional[str] = None
        self.available_vouchers: List[Voucher] = []
        self.voucher: Optional[Voucher] = None
        self.voucher_auto_applied = False

    # Loading

    async def load(self) -> None:
        """Fee settings, restaurant location and vouchers; each may fail on its own."""
        await self.load_fee_settings()
        await self.load_restaurant_location()
        await self.load_vouchers()

    async def load_fee_settings(self) -> FeeSettings:
        try:
            remote = await self.client.get_public_settings()
        except FoodSwipeError as e:
            logger.warning(f"Using default fee settings: {e.message}")
            return self.fees
        self.fees = self.fees.merged_with(remote)
        return self.fees

    async def load_restaurant_location(self) -> Optional[GeoPoint]:
        try:
            restaurant = await self.client.get_restaurant(self.restaurant_id)
        except FoodSwipeError as e:
            logger.warning(f"Restaurant location unavailable: {e.message}")
            return None
        self.restaurant_location = restaurant.location
        return self.restaurant_location

    async def load_vouchers(self) -> List[Voucher]:
        try:
            self.available_vouchers = await self.client.get_restaurant_vouchers(self.restaurant_id)
        except FoodSwipeError as e:
            logger.warning(f"Vouchers unavailable: {e.message}")
            return []
        self.auto_apply_best()
        return self.available_vouchers

    # Cart

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def add_item(self, item: OrderItem) -> None:
        for index, existing in enumerate(self.items):
            if item.dish_id and existing.dish_id == item.dish_id:
                self.items[index] = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
                break
        else:
            self.items.append(item)
        self._cart_changed()

    def set_quantity(self, dish_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.items = [item for item in self.items if item.dish_id != dish_id]
        else:
            self.items = [
                item.model_copy(update={"quantity": quantity}) if item.dish_id == dish_id else item
                for item in self.items
            ]
        self._cart_changed()

    def clear(self) -> None:
        self.items = []
        self.voucher = None
        self.voucher_auto_applied = False

    def _cart_changed(self) -> None:
        if self.voucher is None or self.voucher_auto_applied:
            self.auto_apply_best()

    def set_delivery(self, address: str, location: Optional[GeoPoint] = None, city: Optional[str] = None) -> None:
        self.delivery_address = address
        self.delivery_location = location
        self.city = city

    # Vouchers

    async def apply_voucher(self, code: str) -> ActionResult:
        """Explicitly apply a code; failures come back as errors."""
        code = (code or "").strip().upper()
        if not code:
            return ActionResult(success=False, error="Please enter a voucher code.")

        try:
            known = next((v for v in self.available_vouchers if v.code == code), None)
            if known is not None:
                check_voucher(known, self.subtotal)
            voucher = await self.client.verify_voucher(code, self.subtotal)
            check_voucher(voucher, self.subtotal)
        except (AuthorizationError, MissingCredentialsError) as e:
            return ActionResult(success=False, error=e.message, requires_login=True)
        except FoodSwipeError as e:
            logger.info(f"Voucher {code} rejected: {e.message}")
            return ActionResult(success=False, error=e.message)

        self.voucher = voucher
        self.voucher_auto_applied = False
        discount = voucher_discount(self.subtotal, voucher)
        return ActionResult(success=True, message=f"Voucher applied! You saved Rs. {discount:g}")

    def auto_apply_best(self, vouchers: Optional[Iterable[Voucher]] = None) -> Optional[Voucher]:
        """Apply the best eligible voucher unless the customer picked one."""
        if self.voucher is not None and not self.voucher_auto_applied:
            return None

        candidates = list(vouchers) if vouchers is not None else self.available_vouchers
        subtotal = self.subtotal
        eligible = [v for v in candidates if is_eligible(v, subtotal)]
        best = max(eligible, key=lambda v: voucher_discount(subtotal, v), default=None)

        if best is None or voucher_discount(subtotal, best) <= 0:
            self.voucher = None
            self.voucher_auto_applied = False
            return None

        self.voucher = best
        self.voucher_auto_applied = True
        return best

    def remove_voucher(self) -> None:
        self.voucher = None
        self.voucher_auto_applied = False

    # Totals & placement

    @property
    def distance(self) -> DistanceResult:
        return measure_distance(self.restaurant_location, self.delivery_location, self.fees.max_sane_distance_km)

    def quote(self) -> CheckoutQuote:
        return quote_checkout(self.subtotal, self.distance, self.fees, self.voucher)

    async def place_order(self) -> ActionResult:
        totals = self.quote()
        promo_code = self.voucher.code if self.voucher is not None and totals.discount > 0 else ""
        result = await self.dispatcher.place_order(
            restaurant_id=self.restaurant_id,
            items=list(self.items),
            delivery_address=self.delivery_address,
            subtotal=totals.subtotal,
            delivery_fee=totals.delivery_fee,
            total_amount=totals.total,
            service_fee=totals.service_fee,
            tax=totals.tax,
            payment_method=self.payment_method,
            delivery_location=self.delivery_location,
            city=self.city,
            delivery_instructions=self.instructions,
            promo_code=promo_code,
        )
        if result.success:
            self.clear()
        return result
