"""Redis client for shared throttle state and distributed locking."""

import redis.asyncio as redis

from authguard.core.config import settings

redis_client: redis.Redis | None = None


def redis_enabled() -> bool:
    """True when a Redis URL is configured for this deployment."""
    return bool(settings.REDIS_URL)


async def get_redis() -> redis.Redis:
    """
    Get Redis client, creating if needed.

    Returns a singleton Redis client instance. Thread-safe for async usage.
    """
    global redis_client
    if redis_client is None:
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL is not configured")
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return redis_client


async def close_redis() -> None:
    """
    Close Redis connection.

    Should be called during application shutdown.
    """
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
