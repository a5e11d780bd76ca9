"""Backend REST client."""
from foodswipe.services.backend.client import BackendClient, error_message

__all__ = ["BackendClient", "error_message"]
