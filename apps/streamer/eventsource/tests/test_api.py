"""HTTP surface: stream, publish and health endpoints."""
from __future__ import annotations

import threading
import time
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from ..core import session as session_module
from ..core.frames import StreamEvent
from ..core.heartbeat import heartbeat_event
from ..main import create_app
from ..util.settings import Settings


def test_healthcheck_counts_subscribers(client: TestClient, app) -> None:
    assert client.get("/healthz").json() == {"status": "ok", "subscribers": 0}
    app.state.bus.register("heartbeat")
    assert client.get("/healthz").json() == {"status": "ok", "subscribers": 1}


def test_publish_endpoint_routes_by_name(client: TestClient, app) -> None:
    subscription = app.state.bus.register("orders")

    response = client.post("/api/events/orders", json={"data": {"order": 1}, "id": 3})
    assert response.status_code == 200
    assert response.json() == {"routing_name": "orders", "delivered": 1}
    assert subscription.drain() == [StreamEvent(event="orders", data=('{"order":1}',), id=3)]

    response = client.post(
        "/api/events/orders", json={"event": "Message", "data": "x", "comment": "note"}
    )
    assert response.json()["delivered"] == 1
    assert subscription.drain() == [StreamEvent(event="Message", data=('"x"',), comment="note")]


def test_publish_endpoint_without_listeners(client: TestClient) -> None:
    response = client.post("/api/events/nobody", json={"data": None})
    assert response.status_code == 200
    assert response.json() == {"routing_name": "nobody", "delivered": 0}


def test_publish_endpoint_rejects_multiline_event_name(client: TestClient) -> None:
    response = client.post("/api/events/orders", json={"event": "a\nb", "data": 1})
    assert response.status_code == 422


def test_stream_rejects_empty_event_name(client: TestClient) -> None:
    response = client.get("/api/stream", params={"events": ""})
    assert response.status_code == 400


def test_stream_delivers_heartbeat_frames(
    client: TestClient, app, monkeypatch: pytest.MonkeyPatch
) -> None:
    bus = app.state.bus
    delivered = threading.Event()
    original_encode = session_module.encode_frame

    def encode(event: StreamEvent) -> bytes:
        frame = original_encode(event)
        if event.event == "Message":
            delivered.set()
        return frame

    monkeypatch.setattr(session_module, "encode_frame", encode)

    def produce() -> None:
        try:
            deadline = time.monotonic() + 5
            while bus.subscriber_count("heartbeat") == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            bus.publish("heartbeat", heartbeat_event(datetime(2024, 1, 1, tzinfo=UTC)))
            delivered.wait(5)
        finally:
            bus.shutdown()

    producer = threading.Thread(target=produce)
    producer.start()
    response = client.get("/api/stream", headers={"Last-Event-ID": "not-a-number"})
    producer.join()

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    body = response.text
    assert body.startswith(":connected ")
    assert body.endswith(
        ":heartbeat 2024-01-01T00:00:00+00:00\n"
        "event:Message\n"
        'data:{"Message":"2024-01-01T00:00:00+00:00"}\n\n'
    )
    assert bus.subscriber_count() == 0


def test_startup_runs_heartbeat() -> None:
    app = create_app(Settings(heartbeat_interval=0.05))
    with TestClient(app):
        assert app.state.heartbeat.running
    assert not app.state.heartbeat.running
