"""Customer surfaces."""
from foodswipe.services.customer.checkout import CheckoutSession, check_voucher
from foodswipe.services.customer.tracker import CustomerOrderTracker

__all__ = ["CheckoutSession", "CustomerOrderTracker", "check_voucher"]
