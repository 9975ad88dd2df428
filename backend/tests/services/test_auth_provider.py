"""Tests for the auth provider admin client."""

import json

import httpx
import pytest

from authguard.core.exceptions import AuthProviderError, ConfigurationError
from authguard.services.auth_provider import AuthAdminClient


def _client(handler, base_url: str | None = "https://project.auth.test/", key: str | None = "service-role-key"):
    return AuthAdminClient(base_url=base_url, service_key=key, transport=httpx.MockTransport(handler))


class TestGenerateRecoveryLink:
    @pytest.mark.asyncio
    async def test_requests_recovery_link(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"action_link": "https://project.auth.test/verify?token=t"})

        client = _client(handler)
        link = await client.generate_recovery_link("user@example.com", "https://myapp.lovable.app/reset")
        await client.aclose()

        assert link == "https://project.auth.test/verify?token=t"
        request = requests[0]
        assert request.url == "https://project.auth.test/auth/v1/admin/generate_link"
        assert request.headers["apikey"] == "service-role-key"
        assert request.headers["Authorization"] == "Bearer service-role-key"
        assert json.loads(request.content) == {
            "type": "recovery",
            "email": "user@example.com",
            "redirect_to": "https://myapp.lovable.app/reset",
        }

    @pytest.mark.asyncio
    async def test_nested_properties_shape(self):
        client = _client(
            lambda request: httpx.Response(200, json={"properties": {"action_link": "https://l.test/x"}})
        )

        assert await client.generate_recovery_link("user@example.com", "https://a.test") == "https://l.test/x"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_link_returns_none(self):
        client = _client(lambda request: httpx.Response(200, json={"user": {}}))

        assert await client.generate_recovery_link("user@example.com", "https://a.test") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unknown_user_raises_provider_error(self):
        client = _client(lambda request: httpx.Response(404, json={"msg": "User not found"}))

        with pytest.raises(AuthProviderError) as exc_info:
            await client.generate_recovery_link("nobody@example.com", "https://a.test")
        await client.aclose()

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_non_json_body_raises_provider_error(self):
        client = _client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(AuthProviderError):
            await client.generate_recovery_link("user@example.com", "https://a.test")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_not_configured(self):
        client = _client(lambda request: httpx.Response(200), base_url="", key="")

        assert client.configured is False
        with pytest.raises(ConfigurationError) as exc_info:
            await client.generate_recovery_link("user@example.com", "https://a.test")
        await client.aclose()

        assert exc_info.value.missing == ["AUTH_URL", "AUTH_SERVICE_ROLE_KEY"]
