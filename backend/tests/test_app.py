"""
UXBOX Backend - Application Wiring Tests
=========================================

What:  Tests for the pieces around the page routes: health endpoint,
       request ID middleware, rate limiting and identity resolution.
"""

from uuid import uuid4

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from uxbox.config import settings
from uxbox.dependencies import get_current_user, get_dispatcher
from uxbox.exceptions import AuthenticationError
from uxbox.services.remote_dispatcher import CircuitBreaker, RemoteDispatcher


def make_request(headers=None, state=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/pages",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "state": dict(state or {}),
    }
    return Request(scope)


class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"] == "available"
        assert "version" in data

    @pytest.mark.asyncio
    async def test_degraded_when_services_unreachable(self, test_client, dispatcher):
        dispatcher.healthy = False

        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["services"] == "unavailable"

    @pytest.mark.asyncio
    async def test_circuit_open_skips_probe(self):
        from uxbox.main import app

        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        breaker.record_failure()
        dispatcher = RemoteDispatcher(base_url="http://services.test", circuit_breaker=breaker)
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        try:
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                response = await client.get("/health")
        finally:
            app.dependency_overrides.clear()
            await dispatcher.close()

        assert response.json()["services"] == "circuit_open"
        assert response.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_probe_resumes_after_recovery_timeout(self):
        from uxbox.main import app

        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        breaker.record_failure()
        breaker.last_failure_time -= 61
        dispatcher = RemoteDispatcher(
            base_url="http://services.test",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})),
            circuit_breaker=breaker,
        )
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        try:
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                response = await client.get("/health")
        finally:
            app.dependency_overrides.clear()
            await dispatcher.close()

        assert response.json()["services"] == "available"
        assert response.json()["status"] == "healthy"
        # reporting never moves the breaker
        assert breaker.state == CircuitBreaker.OPEN


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_is_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_oversized_client_id_is_replaced(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "x" * 65})

        assert len(response.headers["X-Request-ID"]) == 8


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_rejects_over_budget(self, monkeypatch, dispatcher, auth_headers, project_id):
        from uxbox.main import create_app

        monkeypatch.setattr(settings, "rate_limit_requests", 2)
        app = create_app()
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        dispatcher.result = []

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            params = {"project": str(project_id)}
            for _ in range(2):
                ok = await client.get("/api/pages", params=params, headers=auth_headers)
                assert ok.status_code == 200

            limited = await client.get("/api/pages", params=params, headers=auth_headers)
            other_user = await client.get(
                "/api/pages",
                params=params,
                headers={settings.auth_user_header: str(uuid4())},
            )
            health = await client.get("/health")

        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert int(limited.headers["Retry-After"]) >= 1
        assert other_user.status_code == 200
        assert health.status_code == 200
        assert len(dispatcher.calls) == 3

    @pytest.mark.asyncio
    async def test_rejection_carries_request_id(
        self, monkeypatch, dispatcher, auth_headers, project_id
    ):
        from uxbox.main import create_app

        monkeypatch.setattr(settings, "rate_limit_requests", 1)
        app = create_app()
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        headers = {**auth_headers, "X-Request-ID": "trace-9"}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            params = {"project": str(project_id)}
            await client.get("/api/pages", params=params, headers=headers)
            limited = await client.get("/api/pages", params=params, headers=headers)

        assert limited.status_code == 429
        assert limited.headers["X-Request-ID"] == "trace-9"
        assert limited.json()["request_id"] == "trace-9"


class TestUnexpectedErrors:

    @pytest.mark.asyncio
    async def test_internal_error_keeps_request_id(self, dispatcher, auth_headers, project_id):
        from uxbox.main import app

        dispatcher.error = RuntimeError("boom")
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.get(
                    "/api/pages",
                    params={"project": str(project_id)},
                    headers={**auth_headers, "X-Request-ID": "trace-7"},
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"
        assert "boom" not in response.json()["message"]
        assert response.json()["request_id"] == "trace-7"
        assert response.headers["X-Request-ID"] == "trace-7"


class TestCurrentUser:

    @pytest.mark.asyncio
    async def test_header_identity(self):
        user = uuid4()

        resolved = await get_current_user(make_request({settings.auth_user_header: str(user)}))

        assert resolved == user

    @pytest.mark.asyncio
    async def test_state_identity_wins_over_header(self):
        user = uuid4()
        request = make_request(
            {settings.auth_user_header: str(uuid4())},
            state={"user": {"id": str(user)}},
        )

        assert await get_current_user(request) == user

    @pytest.mark.asyncio
    async def test_state_uuid_is_returned_as_is(self):
        user = uuid4()

        assert await get_current_user(make_request(state={"user": user})) is user

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"X-Uxbox-User": ""}, {"X-Uxbox-User": "nope"}])
    async def test_missing_or_malformed_identity(self, headers):
        with pytest.raises(AuthenticationError):
            await get_current_user(make_request(headers))
