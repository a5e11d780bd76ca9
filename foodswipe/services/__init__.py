"""
Services package for FoodSwipe.

- backend: REST API client
- realtime: pub/sub channel client
- orders: action dispatcher and per-surface order book
- notifications: notification reconciler
- restaurant, rider, customer: the three actor surfaces
- geocoding: address autocomplete
- sync: fallback poller
"""
