"""Per-connection streaming session."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from .events import EventBus, normalize_names
from .frames import StreamEvent, encode_frame
from .subscription import Subscription, SubscriptionCancelled

logger = logging.getLogger(__name__)

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"


class SessionState(str, Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"


class FrameSink(Protocol):
    """Destination for encoded frames; ``send`` must write and flush."""

    async def send(self, data: bytes) -> None: ...


def parse_last_event_id(raw: str | None) -> int | None:
    """Parse a ``Last-Event-ID`` header, treating anything non-integer as absent."""

    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def connected_comment() -> StreamEvent:
    return StreamEvent(comment=f"connected {datetime.now(UTC).isoformat()}")


class StreamSession:
    """Drain one subscription onto an event stream until the peer goes away.

    The session moves ``CONNECTING -> STREAMING -> CLOSED``. Whatever ends the
    stream (cancellation, a failed write, the consumer closing the generator),
    the subscription is released before the session reaches ``CLOSED``.
    """

    def __init__(
        self,
        bus: EventBus[StreamEvent],
        names: Iterable[str] | str,
        *,
        last_event_id: int | None = None,
        peer: str = "unknown",
    ) -> None:
        self._bus = bus
        self.names = normalize_names(names)
        self.last_event_id = last_event_id
        self.peer = peer
        self.state = SessionState.CONNECTING
        self._subscription: Subscription[StreamEvent] | None = None
        self._cancel_requested = False

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield encoded frames, starting with the handshake comment."""

        try:
            subscription = self._bus.register(self.names)
        except Exception:
            self.state = SessionState.CLOSED
            raise
        self._subscription = subscription
        if self._cancel_requested:
            subscription.cancel()
        try:
            if self.last_event_id is not None:
                # Nothing is retained between connections, so there is nothing to replay.
                logger.debug(
                    "Ignoring Last-Event-ID %s from %s", self.last_event_id, self.peer
                )
            logger.info("Opened event stream to %s", self.peer)
            yield encode_frame(connected_comment())
            self.state = SessionState.STREAMING
            while True:
                try:
                    event = await subscription.wait_for_next()
                except SubscriptionCancelled:
                    logger.info("Event stream to %s cancelled", self.peer)
                    break
                frame = encode_frame(event)
                if frame:
                    yield frame
        except (asyncio.CancelledError, GeneratorExit):
            logger.info("Closed event stream from %s", self.peer)
            raise
        finally:
            subscription.close()
            self.state = SessionState.CLOSED
            logger.debug("Released %r for %s", subscription, self.peer)

    async def run(self, sink: FrameSink) -> None:
        """Write every frame to ``sink`` until cancellation or a failed write."""

        frames = self.frames()
        try:
            async for frame in frames:
                try:
                    await sink.send(frame)
                except Exception as exc:
                    logger.debug("Write to %s failed: %s", self.peer, exc)
                    break
        finally:
            await frames.aclose()

    def cancel(self) -> None:
        self._cancel_requested = True
        if self._subscription is not None:
            self._subscription.cancel()
