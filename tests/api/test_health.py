"""Probes and the middleware stack."""

import pytest
from httpx import ASGITransport, AsyncClient

from watchearn.config import get_settings
from watchearn.main import create_app


class TestProbes:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["checks"]["active_ads"] == 0

    @pytest.mark.asyncio
    async def test_ready_degraded_without_redis(self, client, monkeypatch):
        def unavailable():
            raise RuntimeError("Redis not initialized")

        monkeypatch.setattr("watchearn.health.router.get_redis", unavailable)
        response = await client.get("/ready")
        assert response.status_code == 503
        assert response.json()["checks"]["redis"].startswith("error")

    @pytest.mark.asyncio
    async def test_version(self, client):
        body = (await client.get("/version")).json()
        assert body["version"] == get_settings().app_version
        assert body["platform_timezone"] == "UTC"


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert len(response.headers["X-Request-Id"]) == 36

    @pytest.mark.asyncio
    async def test_request_id_propagated(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "trace-123"})
        assert response.headers["X-Request-Id"] == "trace-123"

    @pytest.mark.asyncio
    async def test_rate_limit_headers(self, client):
        response = await client.get("/version")
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert int(response.headers["X-RateLimit-Remaining"]) < 100

    @pytest.mark.asyncio
    async def test_probes_are_not_rate_limited(self, client):
        response = await client.get("/health")
        assert "X-RateLimit-Limit" not in response.headers

    @pytest.mark.asyncio
    async def test_unknown_route_is_json(self, client):
        response = await client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found", "code": "not_found"}

    @pytest.mark.asyncio
    async def test_wrong_method_keeps_allow_header(self, client):
        response = await client.delete("/health")
        assert response.status_code == 405
        assert response.json()["code"] == "method_not_allowed"
        assert "GET" in response.headers["allow"]

    @pytest.mark.asyncio
    async def test_cors_preflight(self, client):
        response = await client.options(
            "/api/v1/watch-events",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"

    @pytest.mark.asyncio
    async def test_ip_limit_returns_429(self, database, redis_client, monkeypatch):
        monkeypatch.setenv("WE_RATE_LIMIT_REQUESTS", "2")
        get_settings.cache_clear()
        transport = ASGITransport(app=create_app())
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            for _ in range(2):
                assert (await ac.get("/version")).status_code == 200
            response = await ac.get("/version")

        assert response.status_code == 429
        assert response.json()["code"] == "rate_limited"
        assert int(response.headers["Retry-After"]) >= 1
