"""
Restaurant Dashboard

Incoming orders arrive as ``newOrder`` pushes on the restaurant channel and
open a prompt with a countdown. If nobody answers before it runs out the
prompt closes; the order itself stays Pending for the backend to time out.
"""
import asyncio
import logging
import math
from typing import Any, Callable, Dict, Optional

from foodswipe.config.settings import settings
from foodswipe.core.exceptions import MissingCredentialsError
from foodswipe.models.order import Actor, OrderStatus
from foodswipe.schemas.events import (
    EventName,
    NewOrderEvent,
    OrderMessageEvent,
    OrderStatusEvent,
    RiderPickedUpEvent,
)
from foodswipe.schemas.order import Order
from foodswipe.schemas.restaurant import DashboardStats, Restaurant
from foodswipe.services.orders.dispatcher import ActionResult
from foodswipe.services.realtime.channels import ActorIdentity
from foodswipe.services.surface import Surface

logger = logging.getLogger(__name__)


class IncomingOrderPrompt:
    """Accept/reject prompt for one new order, closed when its countdown ends."""

    def __init__(self, order: Order, seconds: float, on_expire: Callable[["IncomingOrderPrompt"], None]):
        self.order = order
        self.seconds = seconds
        self.expired = False
        self._loop = asyncio.get_running_loop()
        self._deadline = self._loop.time() + seconds
        self._on_expire = on_expire
        self._task = asyncio.create_task(self._countdown())

    @property
    def remaining(self) -> int:
        """Whole seconds left, as displayed."""
        return max(0, math.ceil(self._deadline - self._loop.time()))

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def _countdown(self) -> None:
        await asyncio.sleep(self.seconds)
        self.expired = True
        self._on_expire(self)

    def stop(self) -> None:
        if not self._task.done():
            self._task.cancel()


class RestaurantDashboard(Surface):
    """Order board and overview for a signed-in restaurant owner."""

    event_handlers = {
        EventName.NEW_ORDER: "on_new_order",
        EventName.ORDER_STATUS_UPDATE: "on_status_update",
        EventName.RIDER_PICKED_UP: "on_rider_picked_up",
        EventName.ORDER_MESSAGE: "on_order_message",
    }

    def __init__(self, *args, countdown_seconds: Optional[float] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.countdown_seconds = (
            settings.INCOMING_ORDER_COUNTDOWN_SECONDS if countdown_seconds is None else countdown_seconds
        )
        self.restaurant: Optional[Restaurant] = None
        self.stats: Optional[DashboardStats] = None
        self.prompts: Dict[str, IncomingOrderPrompt] = {}

    @property
    def restaurant_id(self) -> Optional[str]:
        if self.restaurant is not None:
            return self.restaurant.id
        profile = self.session.profile
        return profile.restaurant_id if profile else None

    def identity(self) -> ActorIdentity:
        if not self.session.user_id:
            raise MissingCredentialsError()
        return ActorIdentity(user_id=self.session.user_id, role=Actor.RESTAURANT, restaurant_id=self.restaurant_id)

    async def start(self) -> None:
        await self.load_overview()
        await super().start()

    async def load_overview(self) -> Dict[str, Any]:
        """Restaurant profile and stats, fetched together; either may fail alone."""
        results = await self.gather_isolated({
            "restaurant": self.client.get_my_restaurant(),
            "stats": self.client.get_dashboard_stats(),
        })
        if results["restaurant"] is not None:
            self.restaurant = results["restaurant"]
        if results["stats"] is not None:
            self.stats = results["stats"]
        return results

    async def refresh(self) -> None:
        results = await self.gather_isolated({
            "orders": self.client.get_restaurant_orders(),
            "stats": self.client.get_dashboard_stats(),
        })
        if results["orders"] is not None:
            self.book.replace_all(results["orders"])
            self._close_stale_prompts()
        if results["stats"] is not None:
            self.stats = results["stats"]

    # Prompts

    def _open_prompt(self, order: Order) -> None:
        if order.id in self.prompts:
            return
        self.prompts[order.id] = IncomingOrderPrompt(order, self.countdown_seconds, self._expire_prompt)
        logger.info(f"New order {order.id} awaiting response")

    def _expire_prompt(self, prompt: IncomingOrderPrompt) -> None:
        self.prompts.pop(prompt.order.id, None)
        logger.info(f"Prompt for order {prompt.order.id} expired without a response")

    def dismiss_prompt(self, order_id: str) -> None:
        prompt = self.prompts.pop(order_id, None)
        if prompt is not None:
            prompt.stop()

    def _close_stale_prompts(self) -> None:
        for order_id in list(self.prompts):
            order = self.book.get(order_id)
            if order is None or order.status != OrderStatus.PENDING:
                self.dismiss_prompt(order_id)

    # Real-time handlers

    def on_new_order(self, payload: Any) -> None:
        event = self.parse_event(NewOrderEvent, payload, EventName.NEW_ORDER)
        if event is None:
            return
        order = self.book.merge(event.order)
        self.record_push(EventName.NEW_ORDER, payload)
        if order.status == OrderStatus.PENDING:
            self._open_prompt(order)

    async def on_status_update(self, payload: Any) -> None:
        event = self.parse_event(OrderStatusEvent, payload, EventName.ORDER_STATUS_UPDATE)
        if event is None:
            return
        if event.order is not None:
            self.book.merge(event.order)
        else:
            self.book.apply_status(
                event.order_id, event.status, cancellation_reason=event.cancellation_reason, rider=event.rider
            )
        if event.status != OrderStatus.PENDING:
            self.dismiss_prompt(event.order_id)
        self.record_push(EventName.ORDER_STATUS_UPDATE, payload)
        await self.refresh_after_push()

    async def on_rider_picked_up(self, payload: Any) -> None:
        event = self.parse_event(RiderPickedUpEvent, payload, EventName.RIDER_PICKED_UP)
        if event is None:
            return
        self.book.apply_status(event.order_id, OrderStatus.PICKED_UP, rider=event.rider)
        self.record_push(EventName.RIDER_PICKED_UP, payload)
        await self.refresh_after_push()

    def on_order_message(self, payload: Any) -> None:
        event = self.parse_event(OrderMessageEvent, payload, EventName.ORDER_MESSAGE)
        if event is None:
            return
        if self.add_message(event.order_id, event.message):
            self.record_push(EventName.ORDER_MESSAGE, payload)

    # Commands

    def _order(self, order_id: str) -> Optional[Order]:
        return self.book.get(order_id)

    async def accept(self, order_id: str) -> ActionResult:
        order = self._order(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        result = await self.dispatcher.accept_order(order)
        if result.success:
            self.dismiss_prompt(order_id)
        return result

    async def reject(self, order_id: str, reason: str) -> ActionResult:
        order = self._order(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        result = await self.dispatcher.reject_order(order, reason)
        if result.success:
            self.dismiss_prompt(order_id)
        return result

    async def start_preparing(self, order_id: str, prep_time: Optional[int] = None) -> ActionResult:
        order = self._order(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        return await self.dispatcher.start_preparing(order, prep_time)

    async def mark_ready(self, order_id: str) -> ActionResult:
        order = self._order(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        return await self.dispatcher.mark_ready(order)

    async def send_message(self, order_id: str, text: str) -> ActionResult:
        return await self.dispatcher.send_message(order_id, text)

    async def stop(self) -> None:
        for order_id in list(self.prompts):
            self.dismiss_prompt(order_id)
        await super().stop()
