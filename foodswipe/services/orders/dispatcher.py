"""
Order Action Dispatcher

Every actor command runs the same flow:
1. local preconditions (token, required input, transition legality)
2. the authenticated mutation
3. on success, a full re-fetch of the affected list through ``refresh``
4. an ``ActionResult`` carrying either a success message or the error to show

Nothing is retried and local state is never patched optimistically; the
re-fetch is the only way a mutation's effect reaches the view.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from foodswipe.core.exceptions import (
    GENERIC_ERROR_MESSAGE,
    AuthorizationError,
    FoodSwipeError,
    LocalValidationError,
    MissingCredentialsError,
)
from foodswipe.core.session import Session
from foodswipe.core.state_machine import require_transition
from foodswipe.models.order import Actor, OrderStatus, PaymentMethod
from foodswipe.schemas.order import GeoPoint, Order, OrderCreate, OrderItem, StatusUpdate
from foodswipe.services.backend.client import BackendClient

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[Any]]


@dataclass
class ActionResult:
    """Outcome of one dispatched command."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    order: Optional[Order] = None
    requires_login: bool = False
    data: Dict[str, Any] = field(default_factory=dict)


class OrderActionDispatcher:
    """Actor commands against the backend."""

    def __init__(self, client: BackendClient, session: Session, refresh: Optional[RefreshCallback] = None):
        self.client = client
        self.session = session
        self.refresh = refresh
        self._in_flight: Set[Tuple[str, str]] = set()

    def is_in_flight(self, command: str, order_id: str) -> bool:
        """Whether the control for (command, order) should be disabled."""
        return (command, order_id) in self._in_flight

    async def _run(
        self,
        command: str,
        order_id: str,
        action: Callable[[], Awaitable[Any]],
        success_message: str,
    ) -> ActionResult:
        key = (command, order_id)
        if key in self._in_flight:
            return ActionResult(success=False, error="This action is already in progress.")

        self._in_flight.add(key)
        try:
            outcome = await action()
        except (AuthorizationError, MissingCredentialsError) as e:
            logger.warning(f"{command} for order {order_id} needs login: {e.message}")
            return ActionResult(success=False, error=e.message, requires_login=True)
        except FoodSwipeError as e:
            logger.error(f"{command} for order {order_id} failed: {e.message}")
            return ActionResult(success=False, error=e.message or GENERIC_ERROR_MESSAGE)
        finally:
            self._in_flight.discard(key)

        logger.info(f"{command} succeeded for order {order_id}")
        await self._refresh(command)

        if isinstance(outcome, Order):
            return ActionResult(success=True, message=success_message, order=outcome)
        return ActionResult(success=True, message=success_message, data=outcome if isinstance(outcome, dict) else {})

    async def _refresh(self, command: str) -> None:
        if self.refresh is None:
            return
        try:
            await self.refresh()
        except FoodSwipeError as e:
            # The mutation already succeeded; the next poll or push catches up
            logger.error(f"Re-fetch after {command} failed: {e.message}")

    def _rider_id(self) -> str:
        profile = self.session.profile
        rider_id = profile and (profile.rider_id or profile.user_id)
        if not rider_id:
            raise MissingCredentialsError()
        return rider_id

    async def _set_status(self, order: Order, target: OrderStatus, actor: Actor, **fields: Any) -> Order:
        self.session.require_token()
        require_transition(order.status, target, actor)
        return await self.client.update_order_status(order.id, StatusUpdate(status=target, **fields))

    # Customer

    async def place_order(
        self,
        restaurant_id: Optional[str],
        items: List[OrderItem],
        delivery_address: str,
        subtotal: float,
        delivery_fee: float,
        total_amount: float,
        service_fee: float = 0,
        tax: float = 0,
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
        delivery_location: Optional[GeoPoint] = None,
        city: Optional[str] = None,
        delivery_instructions: Optional[str] = None,
        promo_code: str = "",
    ) -> ActionResult:
        async def action():
            self.session.require_token()
            if not delivery_address or not delivery_address.strip():
                raise LocalValidationError("Please enter a delivery address.")
            if not items:
                raise LocalValidationError("Your cart is empty.")
            if not restaurant_id:
                raise LocalValidationError("Restaurant information is missing.")

            body = OrderCreate(
                restaurant=restaurant_id,
                items=items,
                delivery_address=delivery_address,
                city=city,
                delivery_location=delivery_location,
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                service_fee=service_fee,
                tax=tax,
                total_amount=total_amount,
                payment_method=payment_method,
                delivery_instructions=delivery_instructions,
                promo_code=promo_code,
            )
            return await self.client.create_order(body)

        return await self._run("place_order", restaurant_id or "", action, "Order placed successfully!")

    async def cancel_order(self, order: Order, reason: str) -> ActionResult:
        async def action():
            self.session.require_token()
            if not reason or not reason.strip():
                raise LocalValidationError("Please provide a reason for cancellation.")
            require_transition(order.status, OrderStatus.CANCELLED, Actor.CUSTOMER)
            return await self.client.cancel_order(order.id, reason.strip())

        return await self._run("cancel_order", order.id, action, "Order cancelled.")

    async def rate_rider(self, order: Order, rating: int, review: str = "") -> ActionResult:
        async def action():
            self.session.require_token()
            if order.status != OrderStatus.DELIVERED:
                raise LocalValidationError("You can rate the rider once the order is delivered.")
            if not 1 <= rating <= 5:
                raise LocalValidationError("Rating must be between 1 and 5.")
            return await self.client.rate_rider(order.id, rating, review)

        return await self._run("rate_rider", order.id, action, "Thanks for rating your rider!")

    async def send_message(self, order_id: str, text: str) -> ActionResult:
        async def action():
            self.session.require_token()
            if not text or not text.strip():
                raise LocalValidationError("Message cannot be empty.")
            return await self.client.send_order_message(order_id, text.strip())

        return await self._run("send_message", order_id, action, "Message sent.")

    # Restaurant

    async def accept_order(self, order: Order) -> ActionResult:
        async def action():
            return await self._set_status(order, OrderStatus.ACCEPTED, Actor.RESTAURANT)

        return await self._run("accept_order", order.id, action, "Order accepted.")

    async def reject_order(self, order: Order, reason: str) -> ActionResult:
        async def action():
            if not reason or not reason.strip():
                raise LocalValidationError("Please provide a reason for rejecting the order.")
            return await self._set_status(
                order, OrderStatus.CANCELLED, Actor.RESTAURANT, cancellation_reason=reason.strip()
            )

        return await self._run("reject_order", order.id, action, "Order rejected.")

    async def start_preparing(self, order: Order, prep_time: Optional[int] = None) -> ActionResult:
        async def action():
            return await self._set_status(order, OrderStatus.PREPARING, Actor.RESTAURANT, prep_time=prep_time)

        return await self._run("start_preparing", order.id, action, "Order is being prepared.")

    async def mark_ready(self, order: Order) -> ActionResult:
        async def action():
            return await self._set_status(order, OrderStatus.READY, Actor.RESTAURANT)

        return await self._run("mark_ready", order.id, action, "Order is ready for pickup.")

    # Rider

    async def claim_order(self, order: Order) -> ActionResult:
        """Take an offered delivery; assigns the rider without changing status."""
        async def action():
            self.session.require_token()
            rider_id = self._rider_id()
            if order.rider and order.rider != rider_id:
                raise LocalValidationError("This order has already been assigned to another rider.")
            if order.status not in (OrderStatus.ACCEPTED, OrderStatus.PREPARING, OrderStatus.READY):
                raise LocalValidationError("This order is no longer available.")
            return await self.client.accept_delivery(rider_id, order.id)

        return await self._run("claim_order", order.id, action, "Delivery accepted.")

    async def decline_offer(self, order: Order) -> ActionResult:
        async def action():
            self.session.require_token()
            return await self.client.reject_delivery(self._rider_id(), order.id)

        return await self._run("decline_offer", order.id, action, "Delivery declined.")

    async def start_trip(self, order: Order) -> ActionResult:
        async def action():
            return await self._set_status(order, OrderStatus.ON_THE_WAY, Actor.RIDER)

        return await self._run("start_trip", order.id, action, "On the way to the restaurant.")

    async def arrive_at_restaurant(self, order: Order) -> ActionResult:
        async def action():
            return await self._set_status(order, OrderStatus.ARRIVED, Actor.RIDER)

        return await self._run("arrive_at_restaurant", order.id, action, "Arrived at the restaurant.")

    async def pick_up(self, order: Order) -> ActionResult:
        async def action():
            self.session.require_token()
            require_transition(order.status, OrderStatus.PICKED_UP, Actor.RIDER)
            return await self.client.mark_picked_up(self._rider_id(), order.id)

        return await self._run("pick_up", order.id, action, "Order picked up.")

    async def arrive_at_customer(self, order: Order) -> ActionResult:
        async def action():
            return await self._set_status(order, OrderStatus.ARRIVED_AT_CUSTOMER, Actor.RIDER)

        return await self._run("arrive_at_customer", order.id, action, "Arrived at the customer.")

    async def deliver(self, order: Order, distance_km: Optional[float] = None) -> ActionResult:
        """Complete the delivery; ``data`` holds the backend's completion payload."""
        distance = distance_km if distance_km is not None else (order.distance_km or 0)

        async def action():
            self.session.require_token()
            require_transition(order.status, OrderStatus.DELIVERED, Actor.RIDER)
            if distance < 0:
                raise LocalValidationError("Delivery distance cannot be negative.")
            return await self.client.complete_order(order.id, distance)

        return await self._run("deliver", order.id, action, "Order delivered!")

    async def cancel_delivery(self, order: Order, reason: str) -> ActionResult:
        async def action():
            if not reason or not reason.strip():
                raise LocalValidationError("Please provide a reason for cancellation.")
            return await self._set_status(order, OrderStatus.CANCELLED, Actor.RIDER, cancellation_reason=reason.strip())

        return await self._run("cancel_delivery", order.id, action, "Delivery cancelled.")
