"""In-memory event bus feeding the SSE stream."""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from .subscription import BackpressurePolicy, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvalidSubscriptionError(ValueError):
    """Raised when a subscription is requested for an empty or malformed name set."""


def normalize_names(names: Iterable[str] | str) -> frozenset[str]:
    """Validate routing names and return them as a frozen set."""

    if isinstance(names, str):
        names = (names,)
    if names is None:
        raise InvalidSubscriptionError("event names are required")
    result = frozenset(names)
    if not result:
        raise InvalidSubscriptionError("at least one event name is required")
    for name in result:
        if not isinstance(name, str) or not name:
            raise InvalidSubscriptionError(f"invalid event name: {name!r}")
    return result


class EventBus(Generic[T]):
    """Routing-name keyed pub/sub fan-out.

    The registry lock only guards bucket bookkeeping and the snapshot taken by
    a publish; enqueueing happens outside of it, so a slow subscriber never
    blocks other publishers or registrations.
    """

    def __init__(
        self,
        *,
        policy: BackpressurePolicy = BackpressurePolicy.UNBOUNDED,
        maxsize: int | None = None,
    ) -> None:
        if policy is BackpressurePolicy.DROP_OLDEST and (maxsize is None or maxsize <= 0):
            raise ValueError("drop-oldest needs a positive maxsize")
        self.policy = policy
        self.maxsize = maxsize
        self._lock = threading.Lock()
        self._buckets: dict[str, set[Subscription[T]]] = {}
        self._memberships: dict[Subscription[T], frozenset[str]] = {}

    def register(self, names: Iterable[str] | str) -> Subscription[T]:
        event_names = normalize_names(names)
        subscription: Subscription[T] = Subscription(
            self, event_names, policy=self.policy, maxsize=self.maxsize
        )
        with self._lock:
            for name in event_names:
                self._buckets.setdefault(name, set()).add(subscription)
            self._memberships[subscription] = event_names
        logger.debug("Registered %r", subscription)
        return subscription

    def unregister(self, subscription: Subscription[T]) -> None:
        with self._lock:
            names = self._memberships.pop(subscription, None)
            if names is None:
                return
            for name in names:
                bucket = self._buckets.get(name)
                if bucket is None:
                    continue
                bucket.discard(subscription)
                if not bucket:
                    del self._buckets[name]
        logger.debug("Unregistered %r", subscription)

    def publish(self, name: str, payload: T) -> int:
        """Deliver ``payload`` to every subscription registered under ``name``.

        Publishing to a name nobody listens on is a no-op. Returns the number
        of subscriptions the payload was handed to.
        """

        with self._lock:
            bucket = self._buckets.get(name)
            if not bucket:
                return 0
            targets = list(bucket)
        return self._deliver(targets, payload)

    def publish_where(self, predicate: Callable[[str], bool], payload: T) -> int:
        """Deliver ``payload`` once to each subscription with a name matching ``predicate``."""

        with self._lock:
            snapshot = [(name, list(bucket)) for name, bucket in self._buckets.items()]
        targets: dict[Subscription[T], None] = {}
        for name, bucket in snapshot:
            if predicate(name):
                targets.update(dict.fromkeys(bucket))
        return self._deliver(targets, payload)

    def subscriber_count(self, name: str | None = None) -> int:
        with self._lock:
            if name is None:
                return len(self._memberships)
            return len(self._buckets.get(name, ()))

    def shutdown(self) -> None:
        """Cancel every live subscription, releasing all waiting consumers."""

        with self._lock:
            live = list(self._memberships)
        for subscription in live:
            subscription.cancel()
        if live:
            logger.info("Cancelled %d live subscription(s)", len(live))

    @staticmethod
    def _deliver(targets: Iterable[Subscription[T]], payload: T) -> int:
        delivered = 0
        for subscription in targets:
            subscription.enqueue(payload)
            delivered += 1
        return delivered
