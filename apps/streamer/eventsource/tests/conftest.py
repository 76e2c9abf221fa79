from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ..main import create_app
from ..util.settings import Settings


@pytest.fixture(autouse=True)
def _reset_sse_app_status():
    # sse-starlette keeps a module level exit event bound to the first loop it saw.
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit_event = None


@pytest.fixture
def app():
    return create_app(Settings(heartbeat_enabled=False))


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client
