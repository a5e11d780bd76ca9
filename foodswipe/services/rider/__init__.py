"""Rider surface."""
from foodswipe.services.rider.dashboard import RiderDashboard, server_reported_earning, summarize_earning

__all__ = ["RiderDashboard", "server_reported_earning", "summarize_earning"]
