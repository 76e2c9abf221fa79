"""Per-consumer delivery queue with an awaitable wake-up signal."""
from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from collections import deque
from collections.abc import AsyncIterator
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from .events import EventBus

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ids = itertools.count(1)


class SubscriptionCancelled(Exception):
    """Raised by :meth:`Subscription.wait_for_next` once the subscription is cancelled."""


class BackpressurePolicy(str, Enum):
    """What a subscription does when producers outpace its consumer."""

    UNBOUNDED = "unbounded"
    DROP_OLDEST = "bounded-drop-oldest"

    @classmethod
    def _missing_(cls, value: object) -> BackpressurePolicy | None:
        if value == "drop-oldest":
            return cls.DROP_OLDEST
        return None


class Subscription(Generic[T]):
    """FIFO queue drained by exactly one consumer coroutine.

    Producers may call :meth:`enqueue` from any thread. The consumer awaits
    :meth:`wait_for_next` on its own event loop; the loop is bound on the first
    wait so a subscription can be created outside of a running loop.
    """

    def __init__(
        self,
        bus: EventBus[T],
        names: frozenset[str],
        *,
        policy: BackpressurePolicy = BackpressurePolicy.UNBOUNDED,
        maxsize: int | None = None,
    ) -> None:
        if policy is BackpressurePolicy.DROP_OLDEST and (maxsize is None or maxsize <= 0):
            raise ValueError("drop-oldest subscriptions need a positive maxsize")
        self.id = next(_ids)
        self.names = names
        self.policy = policy
        self.dropped = 0
        self._bus = bus
        self._queue: deque[T] = deque(
            maxlen=maxsize if policy is BackpressurePolicy.DROP_OLDEST else None
        )
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None
        self._cancelled = False
        self._closed = False

    def __repr__(self) -> str:
        return f"<Subscription #{self.id} names={sorted(self.names)}>"

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, payload: T) -> None:
        with self._lock:
            if self._closed:
                return
            if self._queue.maxlen is not None and len(self._queue) == self._queue.maxlen:
                # deque(maxlen=...) evicts the head on append.
                self.dropped += 1
                logger.debug("%r full, dropped oldest pending item", self)
            self._queue.append(payload)
            loop, wakeup = self._loop, self._wakeup
        self._signal(loop, wakeup)

    async def wait_for_next(self) -> T:
        """Return the head of the queue, suspending until one is available."""

        wakeup = self._bind()
        while True:
            wakeup.clear()
            with self._lock:
                if self._cancelled:
                    raise SubscriptionCancelled(repr(self))
                if self._queue:
                    return self._queue.popleft()
            await wakeup.wait()

    def drain(self) -> list[T]:
        """Remove and return every pending item without waiting."""

        with self._lock:
            items = list(self._queue)
            self._queue.clear()
        return items

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            loop, wakeup = self._loop, self._wakeup
        self._signal(loop, wakeup)

    def close(self) -> None:
        """Unregister from the bus, wake the consumer and discard pending items."""

        self._bus.unregister(self)
        self.cancel()
        with self._lock:
            self._closed = True
            self._queue.clear()

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                yield await self.wait_for_next()
            except SubscriptionCancelled:
                return

    def _bind(self) -> asyncio.Event:
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._wakeup is None or self._loop is not loop:
                self._loop = loop
                self._wakeup = asyncio.Event()
            return self._wakeup

    @staticmethod
    def _signal(
        loop: asyncio.AbstractEventLoop | None,
        wakeup: asyncio.Event | None,
    ) -> None:
        if loop is None or wakeup is None:
            # No consumer has waited yet; it checks the queue before suspending.
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            wakeup.set()
            return
        try:
            loop.call_soon_threadsafe(wakeup.set)
        except RuntimeError:
            logger.debug("Consumer loop already closed; wake-up ignored")
