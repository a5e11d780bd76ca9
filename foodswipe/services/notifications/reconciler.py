"""
Notification/Event Reconciler

Keeps one session's notifications most-recent-first. Records come from two
places: the REST list and real-time pushes. Pushes are reshaped into the
same ``Notification`` schema locally and deduplicated by a key derived from
the event, so a redelivered push never shows twice.

Read flags are optimistic: the local flag flips immediately and the server
sync runs in the background. A failed sync is logged and the local flag is
kept.
"""
import asyncio
import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from foodswipe.core.exceptions import FoodSwipeError, PayloadError
from foodswipe.models.notification import NotificationType
from foodswipe.schemas.base import parse_payload
from foodswipe.schemas.events import (
    EventName,
    NewOrderEvent,
    NotificationEvent,
    OrderMessageEvent,
    OrderStatusEvent,
    RiderPickedUpEvent,
)
from foodswipe.schemas.notification import Notification
from foodswipe.services.backend.client import BackendClient

logger = logging.getLogger(__name__)

LOCAL_ID_PREFIX = "local:"


def _short(order_id: Optional[str]) -> str:
    return (order_id or "")[-6:].upper()


def _digest(event_name: str, payload: Any) -> str:
    raw = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha1(f"{event_name}|{raw}".encode("utf-8")).hexdigest()[:16]


class NotificationReconciler:
    """Notification list for one signed-in session."""

    def __init__(self, client: BackendClient):
        self.client = client
        self._records: List[Notification] = []
        self._sync_tasks: Set[asyncio.Task] = set()

    @property
    def notifications(self) -> List[Notification]:
        return list(self._records)

    @property
    def unread_count(self) -> int:
        return sum(1 for record in self._records if not record.read)

    def get(self, notification_id: str) -> Optional[Notification]:
        return next((r for r in self._records if r.id == notification_id), None)

    async def load(self) -> List[Notification]:
        """Fetch the server list and merge it with records synthesized from pushes."""
        fetched = await self.client.get_notifications()
        read_locally = {r.id for r in self._records if r.read}
        local = [r for r in self._records if r.local]

        merged: Dict[str, Notification] = {}
        for record in fetched:
            if record.id in read_locally and not record.read:
                record = record.model_copy(update={"read": True})
            merged[record.id] = record
        for record in local:
            merged.setdefault(record.id, record)

        self._records = self._sorted(merged.values())
        logger.info(f"Loaded {len(fetched)} notifications ({self.unread_count} unread)")
        return self.notifications

    @staticmethod
    def _sorted(records) -> List[Notification]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)

        def when(record: Notification) -> datetime:
            stamp = record.created_at
            if stamp is None:
                return epoch
            return stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)

        return sorted(records, key=when, reverse=True)

    def ingest_push(self, event_name: str, payload: Any) -> Optional[Notification]:
        """Prepend a record for a push; returns None for duplicates and unusable payloads."""
        try:
            record = self._synthesize(event_name, payload)
        except PayloadError as e:
            logger.warning(f"Ignoring {event_name} push: {e.message}")
            return None
        if record is None:
            return None

        if self.get(record.id) is not None:
            logger.debug(f"Duplicate {event_name} push ignored: {record.id}")
            return None

        self._records.insert(0, record)
        return record

    def _synthesize(self, event_name: str, payload: Any) -> Optional[Notification]:
        now = datetime.now(timezone.utc)

        if event_name in (EventName.NEW_ORDER, EventName.NEW_ORDER_AVAILABLE):
            event = parse_payload(NewOrderEvent, payload, event_name)
            title = "New order received" if event_name == EventName.NEW_ORDER else "New delivery available"
            return Notification(
                id=f"{LOCAL_ID_PREFIX}{event_name}:{event.order.id}",
                title=title,
                message=f"Order #{_short(event.order.id)} - Rs. {event.order.total_amount:g}",
                type=NotificationType.ORDER,
                order_id=event.order.id,
                created_at=now,
                local=True,
            )

        if event_name == EventName.ORDER_STATUS_UPDATE:
            event = parse_payload(OrderStatusEvent, payload, event_name)
            return Notification(
                id=f"{LOCAL_ID_PREFIX}status:{event.order_id}:{event.status.value}",
                title="Order status updated",
                message=f"Order #{_short(event.order_id)} is now {event.status.value}",
                type=NotificationType.STATUS,
                order_id=event.order_id,
                created_at=now,
                local=True,
            )

        if event_name == EventName.RIDER_PICKED_UP:
            event = parse_payload(RiderPickedUpEvent, payload, event_name)
            return Notification(
                id=f"{LOCAL_ID_PREFIX}pickup:{event.order_id}",
                title="Order picked up",
                message=f"A rider picked up order #{_short(event.order_id)}",
                type=NotificationType.STATUS,
                order_id=event.order_id,
                created_at=now,
                local=True,
            )

        if event_name == EventName.ORDER_MESSAGE:
            event = parse_payload(OrderMessageEvent, payload, event_name)
            return Notification(
                id=f"{LOCAL_ID_PREFIX}chat:{_digest(event_name, payload)}",
                title="New message",
                message=event.message.text,
                type=NotificationType.CHAT,
                order_id=event.order_id,
                created_at=event.message.created_at or now,
                local=True,
            )

        if event_name == EventName.NOTIFICATION:
            event = parse_payload(NotificationEvent, payload, event_name)
            return Notification(
                id=event.id or f"{LOCAL_ID_PREFIX}notification:{_digest(event_name, payload)}",
                title=event.title,
                message=event.message,
                type=NotificationType(event.type) if event.type else NotificationType.SYSTEM,
                order_id=event.order_id or event.data.get("orderId"),
                created_at=now,
                local=event.id is None,
            )

        return None

    def mark_read(self, notification_id: str) -> bool:
        """Flag one record read now; sync to the server in the background."""
        for index, record in enumerate(self._records):
            if record.id != notification_id:
                continue
            if record.read:
                return False
            self._records[index] = record.model_copy(update={"read": True})
            if not record.local:
                self._sync(self.client.mark_notification_read(notification_id), f"mark {notification_id} read")
            return True
        return False

    def mark_all_read(self) -> int:
        """Flag every record read now; returns how many changed."""
        changed = 0
        for index, record in enumerate(self._records):
            if not record.read:
                self._records[index] = record.model_copy(update={"read": True})
                changed += 1
        if changed:
            self._sync(self.client.mark_all_notifications_read(), "mark all read")
        return changed

    def _sync(self, coro, description: str) -> None:
        task = asyncio.create_task(self._run_sync(coro, description))
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    async def _run_sync(self, coro, description: str) -> None:
        try:
            await coro
        except FoodSwipeError as e:
            logger.error(f"Notification sync failed ({description}): {e.message}")

    async def wait_for_sync(self) -> None:
        """Await background read-state syncs still running."""
        if self._sync_tasks:
            await asyncio.gather(*list(self._sync_tasks), return_exceptions=True)
