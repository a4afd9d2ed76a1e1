"""In-memory event broadcaster fanning events out to SSE subscribers."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any

from wagui.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BusEvent:
    event: str
    data: Any


@dataclass(eq=False)
class Subscription:
    """Handle returned by subscribe(); owns the subscriber's outbound queue."""

    id: int
    queue: asyncio.Queue[BusEvent] = field(repr=False)
    dropped: int = 0

    async def get(self, timeout: float | None = None) -> BusEvent | None:
        """Next event, or None when ``timeout`` elapses first."""
        if timeout is None:
            return await self.queue.get()
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class Broadcaster:
    """Registry of live subscribers.

    publish() never awaits a subscriber: each one has a bounded queue filled
    with put_nowait, and a full queue drops that subscriber's copy only.
    """

    def __init__(self, queue_size: int = 256):
        self._queue_size = queue_size
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(id=next(self._ids), queue=asyncio.Queue(maxsize=self._queue_size))
        self._subscribers[sub.id] = sub
        logger.debug("Subscriber registered", data={"subscriber": sub.id, "count": self.subscriber_count})
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if self._subscribers.pop(sub.id, None) is not None:
            logger.debug("Subscriber removed", data={"subscriber": sub.id, "count": self.subscriber_count})

    def publish(self, event: str, data: Any) -> int:
        """Deliver to every subscriber registered now, in registration order.

        Returns the number of subscribers that accepted the event.
        """
        bus_event = BusEvent(event=event, data=data)
        delivered = 0
        # Snapshot: a subscriber may unsubscribe while we iterate.
        for sub in list(self._subscribers.values()):
            try:
                sub.queue.put_nowait(bus_event)
                delivered += 1
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(
                    "Subscriber queue full, event dropped",
                    data={"subscriber": sub.id, "event": event, "dropped": sub.dropped},
                )
        return delivered
