"""Customer order tracking: live status, chat, and the post-delivery rating prompt."""
import logging
from typing import Any, Dict, List, Optional

from foodswipe.core.exceptions import MissingCredentialsError
from foodswipe.models.order import Actor, OrderStatus
from foodswipe.schemas.events import DishEvent, EventName, OrderMessageEvent, OrderStatusEvent
from foodswipe.schemas.order import Order
from foodswipe.services.orders.dispatcher import ActionResult
from foodswipe.services.realtime.channels import ActorIdentity
from foodswipe.services.surface import Surface

logger = logging.getLogger(__name__)


class CustomerOrderTracker(Surface):
    """
    Tracks the signed-in customer's orders.

    When an order is seen reaching Delivered, a rating prompt for it is
    queued; the queued prompt is shown on the next real-time event received,
    one at a time.
    """

    event_handlers = {
        EventName.ORDER_STATUS_UPDATE: "on_status_update",
        EventName.ORDER_MESSAGE: "on_order_message",
        EventName.NOTIFICATION: "on_notification",
        EventName.DISH_PUBLISHED: "on_dish_event",
        EventName.DISH_UPDATED: "on_dish_event",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rating_prompt: Optional[Order] = None
        self._rating_queue: List[str] = []
        self._rated: set = set()
        # latest catalog broadcast per dish id from the public feed
        self.dishes: Dict[str, DishEvent] = {}

    def identity(self) -> ActorIdentity:
        if not self.session.user_id:
            raise MissingCredentialsError()
        return ActorIdentity(user_id=self.session.user_id, role=Actor.CUSTOMER)

    async def refresh(self) -> None:
        orders = await self.client.get_my_orders()
        before = {o.id: o.status for o in self.book.all()}
        self.book.replace_all(orders)

        # Delivered seen only through a re-fetch still queues a rating
        for order in self.book.with_status(OrderStatus.DELIVERED):
            previous = before.get(order.id)
            if previous is not None and previous != OrderStatus.DELIVERED:
                self._queue_rating(order.id)

    @property
    def active_orders(self) -> List[Order]:
        return [o for o in self.book.all() if o.status not in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)]

    @property
    def past_orders(self) -> List[Order]:
        return self.book.with_status(OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    # Rating prompt

    def _queue_rating(self, order_id: str) -> None:
        if order_id in self._rated or order_id in self._rating_queue:
            return
        if self.rating_prompt is not None and self.rating_prompt.id == order_id:
            return
        self._rating_queue.append(order_id)

    def _surface_rating(self) -> None:
        if self.rating_prompt is not None:
            return
        while self._rating_queue:
            order = self.book.get(self._rating_queue.pop(0))
            if order is not None:
                self.rating_prompt = order
                return

    def dismiss_rating(self) -> None:
        if self.rating_prompt is not None:
            self._rated.add(self.rating_prompt.id)
            self.rating_prompt = None

    async def rate(self, rating: int, review: str = "") -> ActionResult:
        if self.rating_prompt is None:
            return ActionResult(success=False, error="There is no delivery to rate.")
        result = await self.dispatcher.rate_rider(self.rating_prompt, rating, review)
        if result.success:
            self.dismiss_rating()
        return result

    # Real-time handlers

    async def on_status_update(self, payload: Any) -> None:
        self._surface_rating()
        event = self.parse_event(OrderStatusEvent, payload, EventName.ORDER_STATUS_UPDATE)
        if event is None:
            return

        if event.order is not None:
            updated = self.book.merge(event.order)
        else:
            updated = self.book.apply_status(
                event.order_id, event.status, cancellation_reason=event.cancellation_reason, rider=event.rider
            )
        if updated is not None and updated.status == OrderStatus.DELIVERED:
            self._queue_rating(updated.id)

        self.record_push(EventName.ORDER_STATUS_UPDATE, payload)
        await self.refresh_after_push()

    def on_order_message(self, payload: Any) -> None:
        self._surface_rating()
        event = self.parse_event(OrderMessageEvent, payload, EventName.ORDER_MESSAGE)
        if event is None:
            return
        if self.add_message(event.order_id, event.message):
            self.record_push(EventName.ORDER_MESSAGE, payload)

    def on_notification(self, payload: Any) -> None:
        self._surface_rating()
        self.record_push(EventName.NOTIFICATION, payload)

    def on_dish_event(self, payload: Any) -> None:
        self._surface_rating()
        dish = self.parse_event(DishEvent, payload, "dish")
        if dish is not None:
            self.dishes[dish.id] = dish

    # Commands

    async def cancel(self, order_id: str, reason: str) -> ActionResult:
        order = self.book.get(order_id)
        if order is None:
            return ActionResult(success=False, error="Order not found.")
        return await self.dispatcher.cancel_order(order, reason)

    async def send_message(self, order_id: str, text: str) -> ActionResult:
        return await self.dispatcher.send_message(order_id, text)
