"""Event stream FastAPI application entrypoint."""
from __future__ import annotations

import logging

from fastapi import FastAPI

from .api.events import router as events_router
from .api.stream import router as stream_router
from .core.events import EventBus
from .core.frames import StreamEvent
from .core.heartbeat import Heartbeat
from .models.events import HealthResponse
from .util.settings import Settings


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and the process-wide bus and heartbeat it owns."""

    settings = settings or Settings.from_env()
    bus: EventBus[StreamEvent] = EventBus(
        policy=settings.queue_policy,
        maxsize=settings.queue_limit,
    )
    heartbeat = Heartbeat(bus, interval=settings.heartbeat_interval)

    app = FastAPI(title="Event Stream", version="0.1.0")
    app.state.settings = settings
    app.state.bus = bus
    app.state.heartbeat = heartbeat

    @app.on_event("startup")
    async def _startup() -> None:
        if settings.heartbeat_enabled:
            heartbeat.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await heartbeat.stop()
        bus.shutdown()

    app.include_router(stream_router, prefix="/api")
    app.include_router(events_router, prefix="/api")

    @app.get("/healthz", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        """Basic health endpoint for readiness probes."""
        return HealthResponse(status="ok", subscribers=bus.subscriber_count())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=app.state.settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
