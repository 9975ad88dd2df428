"""
Per-IP endpoint throttling.

A coarse guard in front of each endpoint, independent of the per-identifier
attempt log. Counts hits per key in a fixed window that starts at the first
hit. State lives in a pluggable store: process memory for single-instance
deployments, Redis when several workers must share counts.

Store failures fail open.
"""

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Key prefix
THROTTLE_KEY_PREFIX = "throttle:"

# Fraction of hits that sweep expired in-memory entries
EVICTION_PROBABILITY = 0.1


@dataclass(frozen=True)
class ThrottleDecision:
    allowed: bool
    retry_after: int | None = None


class ThrottleStore(Protocol):
    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        """Count a hit. Returns (hits in current window, seconds until it resets)."""
        ...

    async def reset(self) -> None:
        ...


@dataclass
class _WindowEntry:
    count: int
    reset_at: float


class InMemoryThrottleStore:
    """Process-local throttle state. Lost on restart, not shared between workers."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        eviction_probability: float = EVICTION_PROBABILITY,
    ) -> None:
        self._entries: dict[str, _WindowEntry] = {}
        self._clock = clock
        self._eviction_probability = eviction_probability

    def __len__(self) -> int:
        return len(self._entries)

    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        now = self._clock()

        if random.random() < self._eviction_probability:
            self._evict_expired(now)

        entry = self._entries.get(key)
        if entry is None or now > entry.reset_at:
            entry = _WindowEntry(count=1, reset_at=now + window_seconds)
            self._entries[key] = entry
        else:
            entry.count += 1

        return entry.count, entry.reset_at - now

    async def reset(self) -> None:
        self._entries.clear()

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
        for key in expired:
            del self._entries[key]


class RedisThrottleStore:
    """
    Throttle state shared through Redis.

    The window key is created with its TTL on the first hit (SET NX EX), then
    incremented; PTTL gives the time left in the window.
    """

    def __init__(self, get_client: Callable[[], Awaitable[redis.Redis]]) -> None:
        self._get_client = get_client

    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        client = await self._get_client()
        redis_key = f"{THROTTLE_KEY_PREFIX}{key}"

        pipe = client.pipeline()
        pipe.set(redis_key, 0, ex=window_seconds, nx=True)
        pipe.incr(redis_key)
        pipe.pttl(redis_key)
        results = await pipe.execute()

        count = int(results[1])
        ttl_ms = results[2]
        if ttl_ms is None or ttl_ms < 0:
            # Key lost its TTL (e.g. restored without expiry): start a fresh window
            await client.expire(redis_key, window_seconds)
            ttl_ms = window_seconds * 1000

        return count, ttl_ms / 1000

    async def reset(self) -> None:
        client = await self._get_client()
        async for key in client.scan_iter(match=f"{THROTTLE_KEY_PREFIX}*"):
            await client.delete(key)


class IPThrottle:
    """Fixed-window request limit for one endpoint, keyed by client IP."""

    def __init__(
        self,
        scope: str,
        max_requests: int,
        window_seconds: int,
        store: ThrottleStore,
    ) -> None:
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be at least 1")
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.store = store

    async def check(self, ip: str) -> ThrottleDecision:
        """
        Count this request against the caller's IP.

        Args:
            ip: Client IP (or the shared "unknown" bucket)

        Returns:
            ThrottleDecision; retry_after is whole seconds until the window
            resets when the request is refused.
        """
        try:
            count, seconds_left = await self.store.hit(f"{self.scope}:{ip}", self.window_seconds)
        except Exception as e:
            # Log but don't fail if the store is unavailable
            logger.warning("IP throttle check for %s failed, allowing request: %s", self.scope, e)
            return ThrottleDecision(allowed=True)

        if count > self.max_requests:
            logger.warning(
                "IP throttle exceeded for %s: %s - %d/%d requests",
                self.scope,
                ip,
                count,
                self.max_requests,
            )
            retry_after = min(self.window_seconds, max(1, math.ceil(seconds_left)))
            return ThrottleDecision(allowed=False, retry_after=retry_after)

        return ThrottleDecision(allowed=True)
