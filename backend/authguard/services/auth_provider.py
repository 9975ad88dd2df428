"""
Auth provider admin API client.

Only the one call this service needs: generating a password recovery link
with the service-role credential.
"""

import logging

import httpx

from authguard.core.config import settings
from authguard.core.exceptions import AuthProviderError, ConfigurationError

logger = logging.getLogger(__name__)


class AuthAdminClient:
    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else settings.AUTH_URL
        self.service_key = service_key if service_key is not None else settings.AUTH_SERVICE_ROLE_KEY
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_key)

    async def generate_recovery_link(self, email: str, redirect_to: str) -> str | None:
        """
        Ask the auth provider for a one-time recovery link.

        Args:
            email: Account email
            redirect_to: Where the link lands after verification

        Returns:
            The action link, or None if the provider answered without one

        Raises:
            ConfigurationError: URL or service key missing
            AuthProviderError: Provider unreachable or returned an error
                (unknown accounts included)
        """
        if not self.configured:
            missing = [
                name
                for name, value in (("AUTH_URL", self.base_url), ("AUTH_SERVICE_ROLE_KEY", self.service_key))
                if not value
            ]
            raise ConfigurationError(missing)

        url = f"{self.base_url.rstrip('/')}/auth/v1/admin/generate_link"
        try:
            response = await self._client.post(
                url,
                json={"type": "recovery", "email": email, "redirect_to": redirect_to},
                headers={
                    "apikey": self.service_key,
                    "Authorization": f"Bearer {self.service_key}",
                },
            )
        except httpx.HTTPError as e:
            raise AuthProviderError(f"request failed: {e}") from e

        if response.is_error:
            raise AuthProviderError(
                f"provider returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthProviderError("provider returned a non-JSON body") from e

        # Flat GoTrue shape, or the client-library shape with nested properties
        link = data.get("action_link") or (data.get("properties") or {}).get("action_link")
        return link or None

    async def aclose(self) -> None:
        await self._client.aclose()
