"""
Pub/sub transports for the real-time client.

A transport moves ``{"event": ..., "data": ...}`` envelopes between named
channels and the client. Delivery is at-least-once with no ordering promise
across channels.
"""
from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from foodswipe.config.settings import settings

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, str, Any], Awaitable[None]]


class ChannelTransport(ABC):
    """Abstract pub/sub connection."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether ``connect`` succeeded and the connection has not been closed or lost."""

    @abstractmethod
    async def connect(self, on_message: MessageHandler) -> None:
        """Open the connection; ``on_message(channel, event, data)`` receives traffic."""

    @abstractmethod
    async def subscribe(self, channel: str) -> None:
        pass

    @abstractmethod
    async def unsubscribe(self, channel: str) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


def decode_envelope(raw: Any) -> Optional[tuple]:
    """Return (event, data) from a wire envelope, or None when malformed."""
    try:
        envelope = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except json.JSONDecodeError:
        return None
    if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
        return None
    return envelope["event"], envelope.get("data")


class RedisChannelTransport(ChannelTransport):
    """Redis pub/sub transport; channel ``name`` maps to ``{prefix}{name}``."""

    def __init__(self, redis_url: str = None, prefix: str = None, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.prefix = settings.REALTIME_CHANNEL_PREFIX if prefix is None else prefix
        self.redis_client = client
        self._pubsub = None
        self._on_message: Optional[MessageHandler] = None
        self._listener: Optional[asyncio.Task] = None
        self._channels: Set[str] = set()
        self._running = False

    @property
    def connected(self) -> bool:
        return self._running

    async def connect(self, on_message: MessageHandler) -> None:
        if self._running:
            return

        if self.redis_client is None:
            self.redis_client = redis.from_url(self.redis_url, decode_responses=True)

        try:
            await self.redis_client.ping()
        except RedisError as e:
            logger.error(f"Real-time connection failed: {e}")
            raise ConnectionError(f"Failed to connect to real-time service: {e}") from e

        self._on_message = on_message
        self._pubsub = self.redis_client.pubsub()
        self._running = True
        logger.info("Real-time transport connected")

    async def subscribe(self, channel: str) -> None:
        await self._pubsub.subscribe(self.prefix + channel)
        self._channels.add(channel)
        # get_message needs at least one subscription
        if self._listener is None:
            self._listener = asyncio.create_task(self._listen())

    async def unsubscribe(self, channel: str) -> None:
        if channel not in self._channels:
            return
        await self._pubsub.unsubscribe(self.prefix + channel)
        self._channels.discard(channel)

    async def close(self) -> None:
        self._running = False
        if self._listener:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None

        if self._pubsub is not None:
            if self._channels:
                await self._pubsub.unsubscribe(*[self.prefix + c for c in self._channels])
            await self._pubsub.aclose()
            self._pubsub = None
        self._channels.clear()

        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None
        logger.info("Real-time transport closed")

    async def _listen(self) -> None:
        """Pump messages from redis to the handler until closed."""
        try:
            await self._pump()
        except Exception as e:
            logger.error(f"Real-time listener stopped: {e}", exc_info=True)
            self._running = False

    async def _pump(self) -> None:
        while self._running:
            try:
                message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            except RedisError as e:
                logger.error(f"Real-time receive failed: {e}")
                await asyncio.sleep(1.0)
                continue

            if not message or message.get("type") != "message":
                continue

            channel = message.get("channel")
            if isinstance(channel, bytes):
                channel = channel.decode("utf-8")
            if channel.startswith(self.prefix):
                channel = channel[len(self.prefix):]

            decoded = decode_envelope(message.get("data"))
            if decoded is None:
                logger.warning(f"Dropping malformed message on {channel}")
                continue

            event, data = decoded
            await self._on_message(channel, event, data)
