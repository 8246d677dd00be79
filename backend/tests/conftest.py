"""
UXBOX Backend - Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    ├── dispatcher:    RecordingDispatcher installed through dependency overrides
    ├── user_id:       Authenticated user id sent by the "gateway"
    ├── auth_headers:  Headers carrying user_id
    ├── project_id:    A project UUID for page payloads
    └── test_client:   HTTPX AsyncClient talking to the app over ASGI
"""

import os

# Override settings for testing BEFORE any application imports
os.environ["SERVICES_URL"] = "http://services.test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"

from typing import Any, List, Optional, Tuple
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from uxbox.config import settings
from uxbox.dependencies import get_dispatcher
from uxbox.schemas.message import Message
from uxbox.services.dispatcher_base import Dispatcher


class RecordingDispatcher(Dispatcher):
    """
    In-memory Dispatcher that records every message.

    Usage:
        dispatcher.result = {"id": "..."}            # resolved value
        dispatcher.error = DispatchError(...)        # raised instead
        mode, message = dispatcher.calls[0]
    """

    def __init__(self):
        self.calls: List[Tuple[str, Message]] = []
        self.result: Any = None
        self.error: Optional[Exception] = None
        self.healthy = True

    async def query(self, message: Message) -> Any:
        return self._handle("query", message)

    async def novelty(self, message: Message) -> Any:
        return self._handle("novelty", message)

    async def health_check(self) -> bool:
        return self.healthy

    def _handle(self, mode: str, message: Message) -> Any:
        self.calls.append((mode, message))
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def last_message(self) -> Message:
        assert self.calls, "dispatcher was never invoked"
        return self.calls[-1][1]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers(user_id):
    return {settings.auth_user_header: str(user_id)}


@pytest.fixture
def project_id() -> UUID:
    return uuid4()


@pytest_asyncio.fixture
async def test_client(dispatcher):
    """
    HTTPX AsyncClient configured to talk to the FastAPI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from uxbox.main import app

    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
