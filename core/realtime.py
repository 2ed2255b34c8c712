"""Fan-out of attendance changes to connected WebSocket clients."""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 100

ATTENDANCE_UPDATE = "attendance_update"
EVENT_UPDATE = "event_update"


class RealtimeNotifier:
    """Keeps one outbound queue per connected client and broadcasts to all.

    Delivery is best-effort: nothing is stored for clients that connect
    later, and a client whose queue fills up is dropped. A dropped queue
    receives a final None so its connection handler knows to close.
    """

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self._subscribers: set[asyncio.Queue] = set()
        self._queue_size = queue_size

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self) -> asyncio.Queue:
        """Add a subscriber and return its queue."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.info(f"Realtime client connected ({self.subscriber_count} total)")
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Remove a subscriber."""
        self._subscribers.discard(queue)
        logger.info(f"Realtime client disconnected ({self.subscriber_count} total)")

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Push a message to all subscribers."""
        dead_queues = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                dead_queues.append(queue)
        for queue in dead_queues:
            self._drop(queue)

    def _drop(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(None)
        logger.warning("Dropped realtime client that fell behind")

    async def broadcast_attendance_update(
        self, event_id: str, attendees: list[str]
    ) -> None:
        await self.broadcast(
            {
                "type": ATTENDANCE_UPDATE,
                "payload": {
                    "eventId": event_id,
                    "attendingCount": len(attendees),
                    "attendees": attendees,
                },
            }
        )

    async def broadcast_event_update(self, event: dict[str, Any]) -> None:
        """Send a full event row (with attendees and attendingCount)."""
        await self.broadcast({"type": EVENT_UPDATE, "payload": event})


# Singleton
notifier = RealtimeNotifier()


def get_notifier() -> RealtimeNotifier:
    """FastAPI dependency for the process-wide notifier."""
    return notifier
