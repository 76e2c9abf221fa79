"""Wait/wake behaviour of a single subscription."""
from __future__ import annotations

import asyncio
import threading

import pytest

from ..core.events import EventBus
from ..core.subscription import SubscriptionCancelled

pytestmark = pytest.mark.asyncio


async def test_wait_for_next_is_fifo() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    bus.publish("a", "p1")
    bus.publish("a", "p2")

    assert await subscription.wait_for_next() == "p1"
    assert await subscription.wait_for_next() == "p2"
    assert len(subscription) == 0


async def test_waiter_resumes_when_payload_arrives() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    waiter = asyncio.create_task(subscription.wait_for_next())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    bus.publish("a", "payload")
    assert await asyncio.wait_for(waiter, 1) == "payload"


async def test_waiter_woken_by_publisher_thread() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    waiter = asyncio.create_task(subscription.wait_for_next())
    await asyncio.sleep(0.01)

    producer = threading.Thread(target=bus.publish, args=("a", "from-thread"))
    producer.start()
    assert await asyncio.wait_for(waiter, 1) == "from-thread"
    producer.join()


async def test_cancel_wakes_waiter_with_empty_queue() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    waiter = asyncio.create_task(subscription.wait_for_next())
    await asyncio.sleep(0.01)

    subscription.cancel()
    with pytest.raises(SubscriptionCancelled):
        await asyncio.wait_for(waiter, 1)


async def test_cancel_takes_priority_over_pending_items() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    bus.publish("a", "pending")
    subscription.cancel()

    with pytest.raises(SubscriptionCancelled):
        await subscription.wait_for_next()
    assert subscription.drain() == ["pending"]


async def test_async_iteration_stops_on_shutdown() -> None:
    bus: EventBus[int] = EventBus()
    subscription = bus.register("n")
    received: list[int] = []

    async def consume() -> None:
        async for item in subscription:
            received.append(item)

    consumer = asyncio.create_task(consume())
    bus.publish("n", 1)
    bus.publish("n", 2)
    await asyncio.sleep(0.01)
    bus.shutdown()
    await asyncio.wait_for(consumer, 1)

    assert received == [1, 2]


async def test_task_cancellation_leaves_subscription_usable() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    waiter = asyncio.create_task(subscription.wait_for_next())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    bus.publish("a", "after")
    assert await asyncio.wait_for(subscription.wait_for_next(), 1) == "after"


async def test_enqueue_after_close_is_ignored() -> None:
    bus: EventBus[str] = EventBus()
    subscription = bus.register("a")
    bus.publish("a", "discarded")
    subscription.close()

    subscription.enqueue("in-flight")
    assert len(subscription) == 0
    with pytest.raises(SubscriptionCancelled):
        await subscription.wait_for_next()
