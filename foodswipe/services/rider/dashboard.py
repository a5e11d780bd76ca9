"""
Rider Dashboard

Delivery offers reach riders on the shared ``riders`` channel; assigned
deliveries then advance one step at a time through the rider's button
sequence. Completing a delivery produces an earnings summary and re-reads
the wallet.
"""
import logging
from typing import Any, Dict, List, Optional

from foodswipe.config.settings import settings
from foodswipe.core.exceptions import AuthorizationError, FoodSwipeError, MissingCredentialsError
from foodswipe.core.pricing import rider_earning
from foodswipe.core.state_machine import is_terminal, next_rider_step
from foodswipe.models.order import Actor, OrderStatus
from foodswipe.schemas.events import EventName, NewOrderEvent, OrderStatusEvent
from foodswipe.schemas.order import Order
from foodswipe.schemas.rider import EarningsSummary, PayoutRecord, RiderEarnings, RiderProfile
from foodswipe.services.orders.book import OrderBook
from foodswipe.services.orders.dispatcher import ActionResult
from foodswipe.services.realtime.channels import ActorIdentity
from foodswipe.services.surface import Surface

logger = logging.getLogger(__name__)

SERVER_EARNING_KEYS = ("netRiderEarning", "riderEarning", "earnings", "earning")


def server_reported_earning(payload: Dict[str, Any]) -> Optional[float]:
    """The earning figure in a completion response, or None when absent."""
    sources = [payload]
    if isinstance(payload.get("order"), dict):
        sources.append(payload["order"])
    for source in sources:
        for key in SERVER_EARNING_KEYS:
            value = source.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
    return None


def summarize_earning(
    order_id: str,
    distance_km: float,
    server_total: Optional[float],
    base_pay: float = None,
    per_km_rate: float = None,
) -> EarningsSummary:
    """Earnings breakdown for a completed delivery.

    A local estimate is used only when the backend reported no figure at all;
    a reported zero is shown as zero.
    """
    base_pay = settings.RIDER_BASE_PAY if base_pay is None else base_pay
    per_km_rate = settings.RIDER_PER_KM_RATE if per_km_rate is None else per_km_rate
    estimate = rider_earning(distance_km, base_pay, per_km_rate, order_id=order_id, estimated=server_total is None)
    if server_total is None or server_total == estimate.total:
        return estimate

    reported_base = min(base_pay, server_total)
    return EarningsSummary(
        order_id=order_id,
        distance_km=distance_km,
        base_pay=reported_base,
        per_km_rate=per_km_rate,
        distance_pay=round(server_total - reported_base, 2),
        total=server_total,
        estimated=False,
    )


class RiderDashboard(Surface):
    """Offers, the active delivery, history, wallet and earnings for one rider."""

    event_handlers = {
        EventName.NEW_ORDER_AVAILABLE: "on_new_order_available",
        EventName.ORDER_STATUS_UPDATE: "on_status_update",
        EventName.NOTIFICATION: "on_notification",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.available = OrderBook()
        self.offers: Dict[str, NewOrderEvent] = {}
        self.profile: Optional[RiderProfile] = None
        self.earnings: Optional[RiderEarnings] = None
        self.payouts: List[PayoutRecord] = []
        self.last_summary: Optional[EarningsSummary] = None

    @property
    def rider_id(self) -> Optional[str]:
        profile = self.session.profile
        if profile is None:
            return None
        return profile.rider_id or profile.user_id

    def _require_rider_id(self) -> str:
        if not self.rider_id:
            raise MissingCredentialsError()
        return self.rider_id

    def identity(self) -> ActorIdentity:
        if not self.session.user_id:
            raise MissingCredentialsError()
        return ActorIdentity(user_id=self.session.user_id, role=Actor.RIDER)

    async def refresh(self) -> None:
        rider_id = self._require_rider_id()
        results = await self.gather_isolated({
            "orders": self.client.get_rider_orders(rider_id),
            "available": self.client.get_available_orders(rider_id),
            "profile": self.client.get_rider(rider_id),
        })
        if results["orders"] is not None:
            self.book.replace_all(results["orders"])
        if results["available"] is not None:
            self.available.replace_all(results["available"])
        if results["profile"] is not None:
            self.profile = results["profile"]

    # Derived views

    @property
    def active_delivery(self) -> Optional[Order]:
        """The rider's one open delivery, if any."""
        mine = [o for o in self.book.open_orders() if o.rider in (None, self.rider_id)]
        return mine[0] if mine else None

    @property
    def available_orders(self) -> List[Order]:
        return [o for o in self.available.all() if o.rider is None and not is_terminal(o.status)]

    @property
    def completed_orders(self) -> List[Order]:
        return self.book.with_status(OrderStatus.DELIVERED)

    @staticmethod
    def next_action(order: Order) -> Optional[OrderStatus]:
        return next_rider_step(order.status)

    # Real-time handlers

    def on_new_order_available(self, payload: Any) -> None:
        event = self.parse_event(NewOrderEvent, payload, EventName.NEW_ORDER_AVAILABLE)
        if event is None:
            return
        if event.order.rider is None and not is_terminal(event.order.status):
            self.available.merge(event.order)
            self.offers[event.order.id] = event
        self.record_push(EventName.NEW_ORDER_AVAILABLE, payload)

    async def on_status_update(self, payload: Any) -> None:
        event = self.parse_event(OrderStatusEvent, payload, EventName.ORDER_STATUS_UPDATE)
        if event is None:
            return

        taken_by_other = event.rider is not None and event.rider != self.rider_id
        if taken_by_other or is_terminal(event.status):
            self.available.remove(event.order_id)
            self.offers.pop(event.order_id, None)

        if event.order is not None and event.order.id in self.book:
            self.book.merge(event.order)
        else:
            self.book.apply_status(event.order_id, event.status, cancellation_reason=event.cancellation_reason)
        self.record_push(EventName.ORDER_STATUS_UPDATE, payload)
        await self.refresh_after_push()

    def on_notification(self, payload: Any) -> None:
        self.record_push(EventName.NOTIFICATION, payload)

    # Commands

    async def claim(self, order_id: str) -> ActionResult:
        order = self.available.get(order_id) or self.book.get(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        result = await self.dispatcher.claim_order(order)
        if result.success:
            self.offers.pop(order_id, None)
        return result

    async def decline(self, order_id: str) -> ActionResult:
        order = self.available.get(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        result = await self.dispatcher.decline_offer(order)
        if result.success:
            self.available.remove(order_id)
            self.offers.pop(order_id, None)
        return result

    async def advance(self, order_id: str, distance_km: Optional[float] = None) -> ActionResult:
        """Perform the next step of the rider sequence for ``order_id``."""
        order = self.book.get(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")

        step = self.next_action(order)
        if step is None:
            return ActionResult(success=False, error=f"No further action for an order that is {order.status.value}.")
        if step == OrderStatus.ON_THE_WAY:
            return await self.dispatcher.start_trip(order)
        if step == OrderStatus.ARRIVED:
            return await self.dispatcher.arrive_at_restaurant(order)
        if step == OrderStatus.PICKED_UP:
            return await self.dispatcher.pick_up(order)
        if step == OrderStatus.ARRIVED_AT_CUSTOMER:
            return await self.dispatcher.arrive_at_customer(order)
        return await self.deliver(order_id, distance_km)

    async def deliver(self, order_id: str, distance_km: Optional[float] = None) -> ActionResult:
        order = self.book.get(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")

        distance = distance_km if distance_km is not None else (order.distance_km or 0)
        result = await self.dispatcher.deliver(order, distance)
        if not result.success:
            return result

        server_total = server_reported_earning(result.data)
        if server_total is None:
            server_total = order.rider_earning
        self.last_summary = summarize_earning(order.id, distance, server_total)
        logger.info(f"Delivery {order.id} earned {self.last_summary.total} ({distance} km)")
        await self.refresh_wallet()
        return result

    async def cancel(self, order_id: str, reason: str) -> ActionResult:
        order = self.book.get(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        return await self.dispatcher.cancel_delivery(order, reason)

    async def send_message(self, order_id: str, text: str) -> ActionResult:
        return await self.dispatcher.send_message(order_id, text)

    # Wallet & earnings

    async def refresh_wallet(self) -> Optional[RiderProfile]:
        try:
            self.profile = await self.client.get_rider(self._require_rider_id())
        except (AuthorizationError, MissingCredentialsError) as e:
            await self.sign_in_required(e)
        except FoodSwipeError as e:
            logger.warning(f"Wallet refresh failed: {e.message}")
        return self.profile

    async def load_earnings(self) -> Dict[str, Any]:
        results = await self.gather_isolated({
            "earnings": self.client.get_rider_earnings(self._require_rider_id()),
            "payouts": self.client.get_payout_history(),
        })
        if results["earnings"] is not None:
            self.earnings = results["earnings"]
        if results["payouts"] is not None:
            self.payouts = results["payouts"]
        return results

    async def request_payout(self, amount: Optional[float] = None) -> ActionResult:
        """Ask for a payout of ``amount`` (defaults to the wallet balance)."""
        balance = self.profile.wallet_balance if self.profile else 0
        amount = balance if amount is None else amount
        minimum = settings.MIN_PAYOUT_AMOUNT

        if amount < minimum:
            return ActionResult(success=False, error=f"Minimum payout amount is Rs. {minimum:g}.")
        if amount > balance:
            return ActionResult(success=False, error="Payout amount exceeds your wallet balance.")

        try:
            response = await self.client.request_payout(amount)
        except AuthorizationError as e:
            return ActionResult(success=False, error=e.message, requires_login=True)
        except FoodSwipeError as e:
            logger.error(f"Payout request failed: {e.message}")
            return ActionResult(success=False, error=e.message)

        await self.refresh_wallet()
        message = response.get("message") if isinstance(response, dict) else None
        return ActionResult(success=True, message=message or "Payout requested.", data=response if isinstance(response, dict) else {})
