"""Server-sent events endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException, Query, Request, status
from sse_starlette.sse import EventSourceResponse

from ..core.events import InvalidSubscriptionError
from ..core.heartbeat import HEARTBEAT_ROUTE
from ..core.session import EVENT_STREAM_MEDIA_TYPE, StreamSession, parse_last_event_id

router = APIRouter(tags=["stream"])


@router.get("/stream")
async def stream_events(
    request: Request,
    events: list[str] = Query(default=[HEARTBEAT_ROUTE]),
    last_event_id: str | None = Header(default=None),
) -> EventSourceResponse:
    """Subscribe to one or more routing names and stream them as they are published."""

    try:
        session = StreamSession(
            request.app.state.bus,
            events,
            last_event_id=parse_last_event_id(last_event_id),
            peer=request.client.host if request.client else "unknown",
        )
    except InvalidSubscriptionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return EventSourceResponse(
        session.frames(),
        media_type=EVENT_STREAM_MEDIA_TYPE,
        ping=request.app.state.settings.ping_interval,
        sep="\n",
    )
