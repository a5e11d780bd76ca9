"""Configuration package: settings and logging."""
from foodswipe.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
