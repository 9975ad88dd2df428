"""Tests for the health check and cross-cutting HTTP behaviour."""

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] is True
        assert "redis" not in body

    @pytest.mark.asyncio
    async def test_database_down(self, client, test_session, monkeypatch):
        async def broken_execute(*args, **kwargs):
            raise ConnectionError("database unavailable")

        monkeypatch.setattr(test_session, "execute", broken_execute)

        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestHttpSurface:
    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, client):
        response = await client.post(
            "/api/check-rate-limit", json={}, headers={"X-Request-ID": "req-456"}
        )

        assert response.json() == {
            "error": "Identifier is required",
            "code": "VALIDATION_ERROR",
            "request_id": "req-456",
        }

    @pytest.mark.asyncio
    async def test_security_headers(self, client):
        response = await client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    @pytest.mark.asyncio
    async def test_cors_preflight(self, client):
        response = await client.options(
            "/api/check-rate-limit",
            headers={
                "Origin": "https://chef-folio-book.lovable.app",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type, apikey, x-client-info",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_oversized_body_rejected(self, client):
        response = await client.post(
            "/api/check-rate-limit",
            content=b"{" + b" " * (70 * 1024) + b"}",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 413
