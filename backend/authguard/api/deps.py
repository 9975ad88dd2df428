"""
Shared FastAPI dependencies.

Process-wide collaborators (throttle state, HTTP clients, the lockout
dispatcher) are created lazily on first use and closed on shutdown. Tests
swap any of them through ``app.dependency_overrides``.
"""

import logging

from authguard.core.config import settings
from authguard.core.redis import get_redis, redis_enabled
from authguard.db.session import get_db
from authguard.services.auth_provider import AuthAdminClient
from authguard.services.email import EmailClient
from authguard.services.lockout import LockoutDispatcher, LockoutNotifier
from authguard.services.throttle import (
    InMemoryThrottleStore,
    IPThrottle,
    RedisThrottleStore,
    ThrottleStore,
)

logger = logging.getLogger(__name__)

__all__ = [
    "close_dependencies",
    "get_auth_client",
    "get_check_rate_limit_throttle",
    "get_db",
    "get_email_client",
    "get_lockout_dispatcher",
    "get_lockout_notification_throttle",
    "get_lockout_notifier",
    "get_password_reset_throttle",
    "get_throttle_store",
]

_throttle_store: ThrottleStore | None = None
_throttles: dict[str, IPThrottle] = {}
_email_client: EmailClient | None = None
_auth_client: AuthAdminClient | None = None
_lockout_dispatcher: LockoutDispatcher | None = None


def get_throttle_store() -> ThrottleStore:
    global _throttle_store
    if _throttle_store is None:
        if redis_enabled():
            _throttle_store = RedisThrottleStore(get_redis)
            logger.info("IP throttling backed by Redis")
        else:
            _throttle_store = InMemoryThrottleStore()
            logger.info("IP throttling backed by process memory")
    return _throttle_store


def _throttle(scope: str, max_requests: int, window_seconds: int) -> IPThrottle:
    if scope not in _throttles:
        _throttles[scope] = IPThrottle(scope, max_requests, window_seconds, get_throttle_store())
    return _throttles[scope]


def get_check_rate_limit_throttle() -> IPThrottle:
    return _throttle(
        "check-rate-limit",
        settings.CHECK_RATE_LIMIT_IP_MAX_REQUESTS,
        settings.CHECK_RATE_LIMIT_IP_WINDOW_SECONDS,
    )


def get_lockout_notification_throttle() -> IPThrottle:
    return _throttle(
        "send-lockout-notification",
        settings.LOCKOUT_NOTIFICATION_IP_MAX_REQUESTS,
        settings.LOCKOUT_NOTIFICATION_IP_WINDOW_SECONDS,
    )


def get_password_reset_throttle() -> IPThrottle:
    return _throttle(
        "send-password-reset",
        settings.PASSWORD_RESET_IP_MAX_REQUESTS,
        settings.PASSWORD_RESET_IP_WINDOW_SECONDS,
    )


def get_email_client() -> EmailClient:
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client


def get_auth_client() -> AuthAdminClient:
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthAdminClient()
    return _auth_client


def get_lockout_notifier() -> LockoutNotifier:
    return LockoutNotifier(get_email_client())


def get_lockout_dispatcher() -> LockoutDispatcher:
    global _lockout_dispatcher
    if _lockout_dispatcher is None:
        _lockout_dispatcher = LockoutDispatcher(
            notifier=get_lockout_notifier(),
            dedup_store=get_throttle_store(),
            remote_url=settings.LOCKOUT_NOTIFIER_URL,
        )
    return _lockout_dispatcher


async def close_dependencies() -> None:
    """Drain pending notifications and close outbound clients."""
    global _throttle_store, _email_client, _auth_client, _lockout_dispatcher

    if _lockout_dispatcher is not None:
        await _lockout_dispatcher.aclose()
    if _email_client is not None:
        await _email_client.aclose()
    if _auth_client is not None:
        await _auth_client.aclose()

    _throttle_store = None
    _throttles.clear()
    _email_client = None
    _auth_client = None
    _lockout_dispatcher = None
