"""
Per-surface order list.

Merges REST re-fetches and push events into one view keyed by order id.
Displayed status never regresses, and applying the same update twice leaves
the same state as applying it once.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from foodswipe.core.state_machine import supersedes
from foodswipe.models.order import OPEN_STATUSES, OrderStatus
from foodswipe.schemas.order import Order

logger = logging.getLogger(__name__)


class OrderBook:
    """Orders visible to one surface, keyed by id."""

    def __init__(self, orders: Optional[Iterable[Order]] = None):
        self._orders: Dict[str, Order] = {}
        for order in orders or []:
            self.merge(order)

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: str) -> bool:
        return order_id in self._orders

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def merge(self, order: Order) -> Order:
        """Insert or refresh one order, keeping the most advanced status seen."""
        current = self._orders.get(order.id)
        if current is not None and current.status != order.status and not supersedes(order.status, current.status):
            logger.debug(f"Keeping {current.status.value} for order {order.id} over stale {order.status.value}")
            order = order.with_status(current.status)
        self._orders[order.id] = order
        return order

    def apply_status(self, order_id: str, status: OrderStatus, **changes: Any) -> Optional[Order]:
        """Apply a status observed on a push.

        Returns the updated order, or None when the order is unknown or the
        status would not move it forward.
        """
        current = self._orders.get(order_id)
        if current is None:
            return None
        if not supersedes(status, current.status):
            return None

        update = {key: value for key, value in changes.items() if value is not None}
        update["status"] = status
        updated = current.model_copy(update=update)
        self._orders[order_id] = updated
        return updated

    def replace_all(self, orders: Iterable[Order]) -> List[Order]:
        """Adopt an authoritative re-fetch; orders missing from it are dropped."""
        previous = self._orders
        self._orders = {}
        for order in orders:
            known = previous.get(order.id)
            if known is not None:
                self._orders[order.id] = known
            self.merge(order)
        return self.all()

    def remove(self, order_id: str) -> Optional[Order]:
        return self._orders.pop(order_id, None)

    def all(self) -> List[Order]:
        """Newest first; orders without a timestamp keep insertion order at the end."""
        dated = [o for o in self._orders.values() if o.created_at is not None]
        undated = [o for o in self._orders.values() if o.created_at is None]
        dated.sort(key=lambda o: o.created_at.timestamp(), reverse=True)
        return dated + undated

    def with_status(self, *statuses: OrderStatus) -> List[Order]:
        wanted = set(statuses)
        return [o for o in self.all() if o.status in wanted]

    def open_orders(self) -> List[Order]:
        return [o for o in self.all() if o.status in OPEN_STATUSES]

    def pending(self) -> List[Order]:
        return self.with_status(OrderStatus.PENDING)
