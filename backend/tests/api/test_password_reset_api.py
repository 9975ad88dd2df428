"""Tests for POST /api/send-password-reset."""

import pytest

from authguard.schemas.password_reset import PASSWORD_RESET_MESSAGE
from authguard.services.email import PASSWORD_RESET_SUBJECT

URL = "/api/send-password-reset"
REDIRECT = "https://myapp.lovable.app/reset-password"


class TestSendPasswordReset:
    @pytest.mark.asyncio
    async def test_sends_reset_email(self, client, auth_client, email_client):
        response = await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": PASSWORD_RESET_MESSAGE}
        assert auth_client.calls == [("user@example.com", REDIRECT)]
        assert email_client.sent[0]["subject"] == PASSWORD_RESET_SUBJECT
        assert "This link will expire in 1 hour." in email_client.sent[0]["html"]

    @pytest.mark.asyncio
    async def test_unknown_account_gets_same_response(self, client, email_client):
        known = await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})
        unknown = await client.post(URL, json={"email": "nobody@example.com", "redirectUrl": REDIRECT})

        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()
        assert len(email_client.sent) == 1

    @pytest.mark.asyncio
    async def test_untrusted_redirect_rejected(self, client, auth_client):
        response = await client.post(
            URL, json={"email": "user@example.com", "redirectUrl": "https://evil.com/reset"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid redirect URL"
        assert auth_client.calls == []

    @pytest.mark.asyncio
    async def test_backslash_host_confusion_rejected(self, client, auth_client, email_client):
        response = await client.post(
            URL,
            json={"email": "user@example.com", "redirectUrl": "https://evil.com\\@myapp.lovable.app/reset"},
        )

        assert response.status_code == 400
        assert auth_client.calls == []
        assert email_client.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("redirect_url", [None, "", "not a url", "ftp://lovable.app/x"])
    async def test_malformed_redirect_rejected(self, client, redirect_url):
        response = await client.post(URL, json={"email": "user@example.com", "redirectUrl": redirect_url})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid redirect URL format"

    @pytest.mark.asyncio
    async def test_email_required(self, client):
        response = await client.post(URL, json={"redirectUrl": REDIRECT})

        assert response.status_code == 400
        assert response.json()["error"] == "Email is required"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        response = await client.post(URL, json={"email": "user@", "redirectUrl": REDIRECT})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid email format"

    @pytest.mark.asyncio
    async def test_missing_email_provider_config(self, client, email_client):
        email_client.configured = False

        response = await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})

        assert response.status_code == 500
        assert response.json()["error"] == "RESEND_API_KEY is not configured"

    @pytest.mark.asyncio
    async def test_missing_auth_provider_config(self, client, auth_client):
        auth_client.configured = False

        response = await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})

        assert response.status_code == 500
        assert response.json()["error"] == "Auth provider configuration is missing"

    @pytest.mark.asyncio
    async def test_missing_link_is_server_error(self, client, auth_client):
        auth_client.link = ""

        response = await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to generate reset link"

    @pytest.mark.asyncio
    async def test_email_failure_is_server_error(self, client, email_client):
        email_client.fail = True

        response = await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"

    @pytest.mark.asyncio
    async def test_sixth_request_from_same_ip_throttled(self, client):
        responses = [
            await client.post(URL, json={"email": "user@example.com", "redirectUrl": REDIRECT})
            for _ in range(6)
        ]

        assert [r.status_code for r in responses] == [200] * 5 + [429]
        body = responses[5].json()
        assert body["error"] == "Too many requests. Please try again later."
        assert 1 <= body["retryAfter"] <= 900
