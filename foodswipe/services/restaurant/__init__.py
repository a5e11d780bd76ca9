"""Restaurant surface."""
from foodswipe.services.restaurant.dashboard import IncomingOrderPrompt, RestaurantDashboard

__all__ = ["IncomingOrderPrompt", "RestaurantDashboard"]
