"""Low-frequency safety-net poll behind push-driven refreshes."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from foodswipe.config.settings import settings
from foodswipe.core.exceptions import AuthorizationError, FoodSwipeError, MissingCredentialsError

logger = logging.getLogger(__name__)


class FallbackPoller:
    """
    Calls ``refresh`` once per ``interval`` seconds of push silence.

    Pushes are the primary invalidation path; after a push-driven refresh the
    surface calls ``poke()`` and the countdown to the next poll starts over.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        interval: Optional[float] = None,
        name: str = "surface",
        on_login_required: Optional[Callable[[FoodSwipeError], Any]] = None,
    ):
        self.refresh = refresh
        self.on_login_required = on_login_required
        self.interval = interval if interval is not None else settings.FALLBACK_POLL_SECONDS
        self.name = name
        self._poked = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._poked.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Fallback poll started for {self.name} every {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Fallback poll stopped for {self.name}")

    def poke(self) -> None:
        """Restart the countdown after a push-driven refresh."""
        self._poked.set()

    async def _run(self) -> None:
        while True:
            # A cancel landing together with a poke must still end the loop
            waiter = asyncio.ensure_future(self._poked.wait())
            try:
                done, _ = await asyncio.wait({waiter}, timeout=self.interval)
            finally:
                waiter.cancel()

            if done:
                self._poked.clear()
                continue

            try:
                await self.refresh()
            except (AuthorizationError, MissingCredentialsError) as e:
                logger.warning(f"Fallback poll for {self.name} stopped, sign-in required: {e.message}")
                if self.on_login_required is not None:
                    self.on_login_required(e)
                return
            except FoodSwipeError as e:
                logger.warning(f"Fallback poll for {self.name} failed: {e.message}")
