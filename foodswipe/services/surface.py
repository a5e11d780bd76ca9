"""
Shared plumbing for actor surfaces.

A surface owns one ``OrderBook``, an action dispatcher whose re-fetch is the
surface's ``refresh``, the fallback poller, and its real-time bindings.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, List, Optional, Tuple, Type

from foodswipe.core.exceptions import AuthorizationError, FoodSwipeError, MissingCredentialsError, PayloadError
from foodswipe.core.session import Session
from foodswipe.schemas.base import SchemaT, parse_payload
from foodswipe.schemas.order import ChatMessage
from foodswipe.services.backend.client import BackendClient
from foodswipe.services.notifications.reconciler import NotificationReconciler
from foodswipe.services.orders.book import OrderBook
from foodswipe.services.orders.dispatcher import OrderActionDispatcher
from foodswipe.services.realtime.channels import ActorIdentity
from foodswipe.services.realtime.client import RealtimeClient
from foodswipe.services.sync.poller import FallbackPoller

logger = logging.getLogger(__name__)


def _same_message(a: ChatMessage, b: ChatMessage) -> bool:
    if a.id and b.id:
        return a.id == b.id
    return (a.sender, a.created_at, a.text) == (b.sender, b.created_at, b.text)


class Surface(ABC):
    """Base class of the restaurant, rider and customer surfaces."""

    # event name -> handler method name
    event_handlers: Dict[str, str] = {}

    def __init__(
        self,
        client: BackendClient,
        session: Session,
        realtime: RealtimeClient,
        reconciler: Optional[NotificationReconciler] = None,
        poll_interval: Optional[float] = None,
    ):
        self.client = client
        self.session = session
        self.realtime = realtime
        self.reconciler = reconciler
        self.book = OrderBook()
        self.dispatcher = OrderActionDispatcher(client, session, refresh=self.refresh)
        self.poller = FallbackPoller(
            self.refresh, interval=poll_interval, name=type(self).__name__, on_login_required=self.mark_login_required
        )
        self.messages: Dict[str, List[ChatMessage]] = {}
        self.requires_login = False
        self._bound: List[Tuple[str, Any]] = []

    @abstractmethod
    def identity(self) -> ActorIdentity:
        """Who this surface connects to the real-time service as."""

    @abstractmethod
    async def refresh(self) -> None:
        """Authoritative re-fetch of everything the surface shows."""

    async def start(self) -> None:
        self.requires_login = False
        await self.refresh()
        await self.realtime.connect(self.identity())
        for event, handler_name in self.event_handlers.items():
            handler = getattr(self, handler_name)
            self.realtime.bind(event, handler)
            self._bound.append((event, handler))
        self.poller.start()
        logger.info(f"{type(self).__name__} started")

    async def stop(self) -> None:
        await self.poller.stop()
        for event, handler in self._bound:
            self.realtime.unbind(event, handler)
        self._bound.clear()
        logger.info(f"{type(self).__name__} stopped")

    async def refresh_after_push(self) -> None:
        """Push-driven invalidation; also restarts the fallback poll countdown."""
        try:
            await self.refresh()
        except (AuthorizationError, MissingCredentialsError) as e:
            await self.sign_in_required(e)
            return
        except FoodSwipeError as e:
            logger.warning(f"{type(self).__name__} refresh after push failed: {e.message}")
        self.poller.poke()

    def mark_login_required(self, error: FoodSwipeError) -> None:
        if not self.requires_login:
            logger.warning(f"{type(self).__name__} needs the user to sign in again: {error.message}")
        self.requires_login = True

    async def sign_in_required(self, error: FoodSwipeError) -> None:
        """The session is gone; stop polling until the actor signs in again."""
        self.mark_login_required(error)
        await self.poller.stop()

    def add_message(self, order_id: str, message: ChatMessage) -> bool:
        """Append a chat message unless a redelivery of it is already shown."""
        thread = self.messages.setdefault(order_id, [])
        if any(_same_message(m, message) for m in thread):
            return False
        thread.append(message)
        return True

    def record_push(self, event_name: str, payload: Any) -> None:
        if self.reconciler is not None:
            self.reconciler.ingest_push(event_name, payload)

    @staticmethod
    def parse_event(schema: Type[SchemaT], payload: Any, event_name: str) -> Optional[SchemaT]:
        try:
            return parse_payload(schema, payload, event_name)
        except PayloadError as e:
            logger.warning(f"Dropping {event_name} push: {e.message}")
            return None

    @staticmethod
    async def gather_isolated(branches: Dict[str, Awaitable[Any]]) -> Dict[str, Any]:
        """Run fetches concurrently; a failed branch yields None without sinking the rest.

        An authorization failure is re-raised once every branch has settled.
        """
        names = list(branches)
        outcomes = await asyncio.gather(*branches.values(), return_exceptions=True)

        results: Dict[str, Any] = {}
        auth_error: Optional[AuthorizationError] = None
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, AuthorizationError):
                auth_error = outcome
                results[name] = None
            elif isinstance(outcome, FoodSwipeError):
                logger.error(f"Failed to load {name}: {outcome.message}")
                results[name] = None
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[name] = outcome

        if auth_error is not None:
            raise auth_error
        return results
