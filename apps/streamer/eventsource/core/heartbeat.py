"""Periodic heartbeat producer."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from datetime import UTC, datetime

from .events import EventBus
from .frames import StreamEvent

logger = logging.getLogger(__name__)

HEARTBEAT_ROUTE = "heartbeat"
HEARTBEAT_EVENT = "Message"


def heartbeat_event(now: datetime | None = None) -> StreamEvent:
    timestamp = (now or datetime.now(UTC)).isoformat()
    return StreamEvent.from_object(
        HEARTBEAT_EVENT,
        {"Message": timestamp},
        comment=f"heartbeat {timestamp}",
    )


class Heartbeat:
    """Publish a timestamp event on a fixed interval.

    Owned by the application; the bus is handed in rather than looked up.
    """

    def __init__(
        self,
        bus: EventBus[StreamEvent],
        *,
        interval: float = 1.0,
        routing_name: str = HEARTBEAT_ROUTE,
    ) -> None:
        if interval <= 0:
            raise ValueError("heartbeat interval must be positive")
        self._bus = bus
        self.interval = interval
        self.routing_name = routing_name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def beat(self) -> int:
        return self._bus.publish(self.routing_name, heartbeat_event())

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="heartbeat")
        logger.info("Heartbeat started (every %ss on %r)", self.interval, self.routing_name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Heartbeat stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.beat()
