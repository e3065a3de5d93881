"""Fan-out of readings to live push subscribers."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from datastore.reading_store import ReadingStore, build_default_store
from models.records import GasReading
from services.errors import DeliveryError
from settings import get_settings

logger = logging.getLogger(__name__)

EVENT_HISTORY = "history"
EVENT_NEW_READING = "new_reading"

Event = Dict[str, Any]


def history_event(snapshot: Dict[str, List[GasReading]]) -> Event:
    payload = {
        sensor_id: [reading.to_wire() for reading in readings]
        for sensor_id, readings in snapshot.items()
    }
    return {"type": EVENT_HISTORY, "payload": payload}


def new_reading_event(reading: GasReading) -> Event:
    return {"type": EVENT_NEW_READING, "payload": reading.to_wire()}


class Subscriber:
    """One live push connection and its bounded outbound queue.

    ``deliver`` never blocks; it must be called from the event loop that
    drains the queue through ``next_event``, which returns ``None`` once the
    subscriber is closed.
    """

    def __init__(
        self,
        queue_size: int = 100,
        client: Optional[str] = None,
        subscriber_id: Optional[str] = None,
    ) -> None:
        self.subscriber_id = subscriber_id or uuid4().hex
        self.client = client
        self._queue: asyncio.Queue[Optional[Event]] = asyncio.Queue(maxsize=queue_size)
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def deliver(self, event: Event) -> None:
        if not self._open:
            raise DeliveryError(self.subscriber_id, "connection closed")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull as exc:
            raise DeliveryError(self.subscriber_id, "outbound queue full") from exc

    async def next_event(self) -> Optional[Event]:
        if not self._open:
            return None
        event = await self._queue.get()
        return event if self._open else None

    def drain(self) -> List[Event]:
        """Remove and return every queued event without waiting."""
        events: List[Event] = []
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return events
            if event is not None:
                events.append(event)

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        # Wake a writer blocked in next_event.
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()


class SubscriberRegistry:
    """Thread-safe set of live subscribers; iteration works on a copy."""

    def __init__(self) -> None:
        self._members: Dict[str, Subscriber] = {}
        self._lock = Lock()

    def register(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._members[subscriber.subscriber_id] = subscriber

    def unregister(self, subscriber: Subscriber) -> bool:
        """Remove ``subscriber``; returns False when it was not registered."""
        with self._lock:
            return self._members.pop(subscriber.subscriber_id, None) is not None

    def members(self) -> List[Subscriber]:
        with self._lock:
            return list(self._members.values())

    def __contains__(self, subscriber: object) -> bool:
        if not isinstance(subscriber, Subscriber):
            return False
        with self._lock:
            return subscriber.subscriber_id in self._members

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)


class BroadcastHub:
    """Sends new readings to every subscriber and history to joiners."""

    def __init__(self, store: ReadingStore, registry: Optional[SubscriberRegistry] = None) -> None:
        self.store = store
        self.registry = registry if registry is not None else SubscriberRegistry()
        # Held across register + history enqueue so later readings queue behind the history.
        self._join_lock = Lock()

    def on_new_reading(self, reading: GasReading) -> int:
        """Deliver ``reading`` to all live subscribers; returns the delivered count."""
        with self._join_lock:
            targets = self.registry.members()

        event = new_reading_event(reading)
        delivered = 0
        for subscriber in targets:
            if self._deliver(subscriber, event):
                delivered += 1
        return delivered

    def on_subscriber_join(self, subscriber: Subscriber) -> None:
        with self._join_lock:
            self.registry.register(subscriber)
            event = history_event(self.store.snapshot())
            delivered = self._deliver(subscriber, event)

        if delivered:
            logger.info(
                "Subscriber joined",
                extra={
                    "client": subscriber.client,
                    "history_length": sum(len(items) for items in event["payload"].values()),
                    "subscriber_count": len(self.registry),
                },
            )

    def on_subscriber_leave(self, subscriber: Subscriber) -> None:
        subscriber.close()
        if self.registry.unregister(subscriber):
            logger.info(
                "Subscriber left",
                extra={"client": subscriber.client, "subscriber_count": len(self.registry)},
            )

    def close_all(self) -> None:
        for subscriber in self.registry.members():
            self.on_subscriber_leave(subscriber)

    def _deliver(self, subscriber: Subscriber, event: Event) -> bool:
        try:
            subscriber.deliver(event)
        except DeliveryError as exc:
            logger.warning(
                "Dropped event for subscriber",
                extra={
                    "client": subscriber.client,
                    "event_type": event.get("type"),
                    "reason": exc.reason,
                },
            )
            if not subscriber.is_open:
                self.registry.unregister(subscriber)
            return False
        return True


@lru_cache
def build_default_hub() -> BroadcastHub:
    """Factory that wires the hub to the process-wide reading store."""
    return BroadcastHub(store=build_default_store())


def build_subscriber(client: Optional[str] = None) -> Subscriber:
    return Subscriber(queue_size=get_settings().subscriber_queue_size, client=client)
