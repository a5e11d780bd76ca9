"""Real-time channel client: one connection per signed-in actor."""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from foodswipe.services.realtime.channels import ActorIdentity, default_channels
from foodswipe.services.realtime.transport import ChannelTransport

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], Any]


class ChannelHandle:
    """A subscribed channel; binds events scoped to it."""

    def __init__(self, client: "RealtimeClient", name: str):
        self.client = client
        self.name = name

    def bind(self, event: str, callback: EventCallback) -> None:
        self.client.bind(event, callback, channel=self.name)

    def unbind(self, event: str, callback: Optional[EventCallback] = None) -> None:
        self.client.unbind(event, callback, channel=self.name)

    def __repr__(self) -> str:
        return f"ChannelHandle({self.name!r})"


class RealtimeClient:
    """
    Subscribe/bind facade over a pub/sub transport.

    Listeners are keyed by (channel, event); a listener bound without a
    channel receives the event from every subscribed channel. Callbacks may
    be plain functions or coroutines. One failing callback is logged and does
    not keep the event from the others.
    """

    def __init__(self, transport: ChannelTransport):
        self.transport = transport
        self.identity: Optional[ActorIdentity] = None
        self._channels: Set[str] = set()
        self._listeners: Dict[Tuple[Optional[str], str], List[EventCallback]] = {}
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self.identity is not None and self.transport.connected

    @property
    def channels(self) -> Set[str]:
        return set(self._channels)

    async def connect(self, identity: ActorIdentity) -> None:
        """Connect as ``identity``; a repeat call with the same identity is a no-op."""
        async with self._lock:
            if self.connected and self.identity == identity:
                return
            if self.identity is not None:
                await self._teardown()

            await self.transport.connect(self._dispatch)
            self.identity = identity
            for channel in default_channels(identity):
                await self._subscribe(channel)
            logger.info(f"Real-time connected as {identity.role.value} {identity.user_id}")

    async def subscribe(self, channel: str) -> ChannelHandle:
        async with self._lock:
            return await self._subscribe(channel)

    async def _subscribe(self, channel: str) -> ChannelHandle:
        if channel not in self._channels:
            await self.transport.subscribe(channel)
            self._channels.add(channel)
            logger.info(f"Subscribed to channel: {channel}")
        return ChannelHandle(self, channel)

    async def unsubscribe(self, channel: str) -> None:
        async with self._lock:
            if channel not in self._channels:
                return
            await self.transport.unsubscribe(channel)
            self._channels.discard(channel)
            for key in [k for k in self._listeners if k[0] == channel]:
                del self._listeners[key]
            logger.info(f"Unsubscribed from channel: {channel}")

    def bind(self, event: str, callback: EventCallback, channel: Optional[str] = None) -> None:
        listeners = self._listeners.setdefault((channel, event), [])
        if callback not in listeners:
            listeners.append(callback)

    def unbind(self, event: str, callback: Optional[EventCallback] = None, channel: Optional[str] = None) -> None:
        key = (channel, event)
        if key not in self._listeners:
            return
        if callback is None:
            del self._listeners[key]
            return
        self._listeners[key] = [cb for cb in self._listeners[key] if cb != callback]
        if not self._listeners[key]:
            del self._listeners[key]

    async def disconnect(self) -> None:
        """Tear the connection down (logout or surface shutdown)."""
        async with self._lock:
            await self._teardown()
            self._listeners.clear()

    async def _teardown(self) -> None:
        if self.identity is None and not self.transport.connected:
            return
        for channel in list(self._channels):
            await self.transport.unsubscribe(channel)
        self._channels.clear()
        await self.transport.close()
        logger.info("Real-time disconnected")
        self.identity = None

    async def _dispatch(self, channel: str, event: str, data: Any) -> None:
        """Fan one incoming event out to its listeners."""
        if channel not in self._channels:
            return

        callbacks = list(self._listeners.get((channel, event), [])) + list(self._listeners.get((None, event), []))
        for callback in callbacks:
            try:
                result = callback(data)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Listener for {event} on {channel} failed: {e}", exc_info=True)
