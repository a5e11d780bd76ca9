"""Order list reconciliation and action dispatch."""
from foodswipe.services.orders.book import OrderBook
from foodswipe.services.orders.dispatcher import ActionResult, OrderActionDispatcher

__all__ = ["OrderBook", "ActionResult", "OrderActionDispatcher"]
