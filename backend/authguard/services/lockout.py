"""
Lockout notifications.

``LockoutNotifier`` sends the security alert email. ``LockoutDispatcher`` is
the one-way channel the rate limiter uses: it schedules a notification and
returns at once, so the rate-limit response never waits on email delivery.
"""

import asyncio
import logging
from typing import Any

import httpx

from authguard.core.config import settings
from authguard.schemas.notification import LockoutNotification
from authguard.services.email import LOCKOUT_SUBJECT, EmailClient, render_lockout_email
from authguard.services.throttle import ThrottleStore

logger = logging.getLogger(__name__)

DEDUP_SCOPE = "lockout-notified"


class LockoutNotifier:
    """Compose and send the account-locked email. No retries."""

    def __init__(self, email_client: EmailClient) -> None:
        self.email_client = email_client

    async def send(self, notification: LockoutNotification) -> dict[str, Any]:
        html_body = render_lockout_email(notification.attempt_type, notification.lockout_minutes)
        return await self.email_client.send(notification.email, LOCKOUT_SUBJECT, html_body)


class LockoutDispatcher:
    """
    Fire-and-forget delivery of lockout notifications.

    Sends in-process through a LockoutNotifier, or, when ``remote_url`` is
    set, POSTs the message to a separately deployed notifier endpoint.
    At most one notification per (identifier, attempt type) is dispatched per
    lockout window.
    """

    def __init__(
        self,
        notifier: LockoutNotifier | None = None,
        dedup_store: ThrottleStore | None = None,
        remote_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if notifier is None and not remote_url:
            raise ValueError("LockoutDispatcher needs a notifier or a remote_url")
        self.notifier = notifier
        self.dedup_store = dedup_store
        self.remote_url = remote_url
        self._http_client = http_client
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def dispatch(self, notification: LockoutNotification) -> bool:
        """
        Schedule a notification without waiting for it.

        Returns:
            True if a send was scheduled, False if it was de-duplicated
        """
        if not await self._first_in_window(notification):
            logger.debug("Lockout notification for %s already sent this window", notification.email)
            return False

        task = asyncio.create_task(self._deliver(notification), name="lockout-notification")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._http_client is not None:
            await self._http_client.aclose()

    async def _first_in_window(self, notification: LockoutNotification) -> bool:
        if self.dedup_store is None:
            return True
        key = f"{DEDUP_SCOPE}:{notification.attempt_type}:{notification.email}"
        try:
            count, _ = await self.dedup_store.hit(key, notification.lockout_minutes * 60)
        except Exception as e:
            logger.warning("Lockout de-duplication unavailable, sending anyway: %s", e)
            return True
        return count == 1

    async def _deliver(self, notification: LockoutNotification) -> None:
        try:
            if self.remote_url:
                await self._post_remote(notification)
            else:
                await self.notifier.send(notification)
            logger.info(
                "Lockout notification sent for %s (%s, %d minutes)",
                notification.email,
                notification.attempt_type,
                notification.lockout_minutes,
            )
        except Exception:
            logger.exception("Failed to send lockout notification for %s", notification.email)

    async def _post_remote(self, notification: LockoutNotification) -> None:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        response = await self._http_client.post(
            self.remote_url,
            json=notification.model_dump(by_alias=True),
        )
        response.raise_for_status()
