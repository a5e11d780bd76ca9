"""FoodSwipe client core: order lifecycle, real-time sync and actor surfaces."""

__version__ = "1.0.0"
