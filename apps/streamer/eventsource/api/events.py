"""Publish endpoint for external producers."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from ..core.frames import StreamEvent
from ..models.events import PublishRequest, PublishResponse

router = APIRouter(tags=["events"])


@router.post("/events/{name}", response_model=PublishResponse)
async def publish_event(request: Request, name: str, payload: PublishRequest) -> PublishResponse:
    """Publish one event under routing name ``name``."""

    try:
        event = StreamEvent.from_object(
            payload.event or name,
            payload.data,
            id=payload.id,
            comment=payload.comment,
        )
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    delivered = request.app.state.bus.publish(name, event)
    return PublishResponse(routing_name=name, delivered=delivered)
