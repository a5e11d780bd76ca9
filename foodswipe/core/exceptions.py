"""Exception hierarchy for the client core.

Every failure the actor can see maps onto one of these classes:

- ``LocalValidationError``: required local input is missing; raised before any
  network call.
- ``NetworkError``: the backend never answered.
- ``ServerRejectedError``: the backend answered with an error payload.
- ``AuthorizationError``: the backend answered 401; the session is already
  cleared when this is raised.
"""
from typing import Any, Dict, Optional

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."


class FoodSwipeError(Exception):
    """Base exception carrying a user-visible message."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        super().__init__(self.message)


class LocalValidationError(FoodSwipeError):
    """Required local input is missing or invalid."""


class MissingCredentialsError(LocalValidationError):
    """No auth token is available for a protected action."""

    def __init__(self, message: str = "Please login to continue."):
        super().__init__(message)


class VoucherRejectedError(LocalValidationError):
    """A voucher cannot be applied to the current order."""


class NetworkError(FoodSwipeError):
    """No response was received from the backend."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE):
        super().__init__(message)


class ServerRejectedError(FoodSwipeError):
    """The backend rejected the request with an error payload."""


class AuthorizationError(FoodSwipeError):
    """The backend rejected the bearer token."""

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE, response_data: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=401, response_data=response_data)


class TransitionError(FoodSwipeError):
    """A status change is not allowed for this actor from the current status."""


class PayloadError(FoodSwipeError):
    """External data failed schema validation."""
