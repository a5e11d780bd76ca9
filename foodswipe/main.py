"""
Runs the surface for the signed-in actor until interrupted.

The session is read from the session file; its role picks the surface.
"""
import asyncio
import logging

from foodswipe.config.logging import setup_logging
from foodswipe.config.settings import settings
from foodswipe.core.session import Session, SessionStore
from foodswipe.models.order import Actor
from foodswipe.services.backend.client import BackendClient
from foodswipe.services.customer.tracker import CustomerOrderTracker
from foodswipe.services.notifications.reconciler import NotificationReconciler
from foodswipe.services.realtime.client import RealtimeClient
from foodswipe.services.realtime.transport import RedisChannelTransport
from foodswipe.services.restaurant.dashboard import RestaurantDashboard
from foodswipe.services.rider.dashboard import RiderDashboard
from foodswipe.services.surface import Surface

logger = logging.getLogger(__name__)

SURFACES = {
    Actor.RESTAURANT: RestaurantDashboard,
    Actor.RIDER: RiderDashboard,
    Actor.CUSTOMER: CustomerOrderTracker,
}


def build_surface(session: Session, client: BackendClient, realtime: RealtimeClient) -> Surface:
    surface_class = SURFACES.get(session.role)
    if surface_class is None:
        raise ValueError(f"No surface for role {session.role}")
    return surface_class(client, session, realtime, reconciler=NotificationReconciler(client))


async def main():
    setup_logging()
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION} ({settings.ENVIRONMENT})")

    session = Session.load(SessionStore())
    if not session.is_authenticated:
        logger.error("No signed-in session found; sign in first")
        return

    realtime = RealtimeClient(RedisChannelTransport())
    async with BackendClient(session) as client:
        surface = build_surface(session, client, realtime)
        try:
            await surface.start()
            if surface.reconciler is not None:
                await surface.reconciler.load()
            await asyncio.Event().wait()
        finally:
            await surface.stop()
            await realtime.disconnect()
            logger.info("Stopped")


if __name__ == "__main__":
    asyncio.run(main())
