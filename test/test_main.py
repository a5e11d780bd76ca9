"""
Tests for the entry point wiring and logging configuration
"""
import tempfile
import unittest
from pathlib import Path

from foodswipe.config.logging import build_logging_config
from foodswipe.config.settings import Settings
from foodswipe.main import build_surface
from foodswipe.models.order import Actor
from foodswipe.services.customer.tracker import CustomerOrderTracker
from foodswipe.services.realtime.client import RealtimeClient
from foodswipe.services.restaurant.dashboard import RestaurantDashboard
from foodswipe.services.rider.dashboard import RiderDashboard

from fakes import FakeTransport, make_client, make_session


class TestBuildSurface(unittest.IsolatedAsyncioTestCase):
    """Test cases for picking the surface by role"""

    def build(self, role):
        return build_surface(make_session(role), make_client(), RealtimeClient(FakeTransport()))

    async def test_role_picks_surface(self):
        self.assertIsInstance(self.build(Actor.RESTAURANT), RestaurantDashboard)
        self.assertIsInstance(self.build(Actor.RIDER), RiderDashboard)
        self.assertIsInstance(self.build(Actor.CUSTOMER), CustomerOrderTracker)

    async def test_surface_gets_reconciler(self):
        self.assertIsNotNone(self.build(Actor.CUSTOMER).reconciler)

    async def test_unknown_role(self):
        with self.assertRaises(ValueError):
            self.build(Actor.SYSTEM)


class TestLoggingConfig(unittest.TestCase):
    """Test cases for build_logging_config"""

    def test_console_only_by_default(self):
        config = build_logging_config(Settings(LOG_TO_FILE=False))
        self.assertEqual(list(config["handlers"]), ["console"])
        self.assertEqual(config["loggers"]["aiohttp"]["level"], "WARNING")

    def test_rotating_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp) / "logs"
            config = build_logging_config(Settings(LOG_TO_FILE=True, LOG_DIR=str(log_dir)))

            self.assertTrue(log_dir.is_dir())
            self.assertEqual(config["handlers"]["file"]["maxBytes"], 10485760)
            self.assertIn("error_file", config["loggers"]["foodswipe.errors"]["handlers"])

    def test_debug_lowers_package_level(self):
        config = build_logging_config(Settings(DEBUG=True, LOG_LEVEL="warning"))
        self.assertEqual(config["loggers"]["foodswipe"]["level"], "DEBUG")
        self.assertEqual(config["loggers"][""]["level"], "WARNING")


if __name__ == "__main__":
    unittest.main()
