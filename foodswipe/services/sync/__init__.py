"""Fallback polling."""
from foodswipe.services.sync.poller import FallbackPoller

__all__ = ["FallbackPoller"]
