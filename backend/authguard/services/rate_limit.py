"""
Rate limiting service for authentication attempts.

Counts attempts per (identifier, attempt type) in a sliding window backed by
the ``auth_rate_limits`` table. Every allowed check is recorded, so a check
consumes one attempt slot. Storage failures fail open.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.models.auth_rate_limit import AuthRateLimit
from authguard.utils.validators import normalize_identifier

logger = logging.getLogger(__name__)


class AttemptType(str, enum.Enum):
    LOGIN = "login"
    SIGNUP = "signup"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class RateLimitPolicy:
    max_attempts: int
    window_minutes: int

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.window_minutes < 1:
            raise ValueError("window_minutes must be at least 1")

    @property
    def window_seconds(self) -> int:
        return self.window_minutes * 60


RATE_LIMIT_POLICIES: dict[AttemptType, RateLimitPolicy] = {
    AttemptType.LOGIN: RateLimitPolicy(max_attempts=5, window_minutes=15),
    AttemptType.SIGNUP: RateLimitPolicy(max_attempts=3, window_minutes=60),
    AttemptType.PASSWORD_RESET: RateLimitPolicy(max_attempts=3, window_minutes=60),
}


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int | None = None


def resolve_attempt_type(raw: str | None) -> AttemptType:
    """Map a client-supplied attempt type onto a known one; unknown types count as login."""
    if raw is None:
        return AttemptType.LOGIN
    try:
        return AttemptType(raw)
    except ValueError:
        logger.info("Unknown attempt type %r, applying login policy", raw)
        return AttemptType.LOGIN


def get_policy(attempt_type: AttemptType) -> RateLimitPolicy:
    return RATE_LIMIT_POLICIES.get(attempt_type, RATE_LIMIT_POLICIES[AttemptType.LOGIN])


def max_window_minutes() -> int:
    """Largest configured window; anything older is never read again."""
    return max(policy.window_minutes for policy in RATE_LIMIT_POLICIES.values())


async def get_attempt_count(
    db: AsyncSession,
    identifier: str,
    attempt_type: AttemptType,
    window_start: datetime,
) -> int:
    """Count attempts for an identifier at or after window_start."""
    result = await db.execute(
        select(func.count()).select_from(AuthRateLimit).where(
            AuthRateLimit.identifier == identifier,
            AuthRateLimit.attempt_type == attempt_type.value,
            AuthRateLimit.attempted_at >= window_start,
        )
    )
    return result.scalar() or 0


async def record_attempt(
    db: AsyncSession,
    identifier: str,
    attempt_type: AttemptType,
    attempted_at: datetime,
) -> None:
    """Record an allowed attempt."""
    db.add(
        AuthRateLimit(
            identifier=identifier,
            attempt_type=attempt_type.value,
            attempted_at=attempted_at,
        )
    )
    await db.commit()


async def check_rate_limit(
    db: AsyncSession,
    identifier: str,
    attempt_type: AttemptType,
    now: datetime | None = None,
) -> RateLimitResult:
    """
    Decide whether an attempt is allowed now and record it if so.

    Concurrent checks for the same identifier may both read the count before
    either writes, letting one or two extra attempts through.

    Args:
        db: Database session
        identifier: Email or other account key (normalized here)
        attempt_type: Which policy applies
        now: Clock override (UTC)

    Returns:
        RateLimitResult. retry_after is the full window length in seconds
        when denied, None when allowed.
    """
    policy = get_policy(attempt_type)
    identifier = normalize_identifier(identifier)
    now = now or datetime.now(UTC)
    window_start = now - timedelta(minutes=policy.window_minutes)

    try:
        count = await get_attempt_count(db, identifier, attempt_type, window_start)
        allowed = count < policy.max_attempts

        if allowed:
            await record_attempt(db, identifier, attempt_type, now)
    except Exception as e:
        # Availability of sign-in beats strict enforcement
        logger.warning("Rate limit check failed, allowing attempt: %s", e)
        await _safe_rollback(db)
        return RateLimitResult(allowed=True, remaining=policy.max_attempts)

    if not allowed:
        logger.info(
            "Rate limit exceeded for %s (%s): %d/%d in %d minutes",
            identifier,
            attempt_type.value,
            count,
            policy.max_attempts,
            policy.window_minutes,
        )
        return RateLimitResult(allowed=False, remaining=0, retry_after=policy.window_seconds)

    return RateLimitResult(allowed=True, remaining=max(0, policy.max_attempts - count - 1))


async def cleanup_old_attempts(
    db: AsyncSession,
    older_than_minutes: int | None = None,
    now: datetime | None = None,
) -> int:
    """Remove attempts older than the given age (default: largest window). Returns count deleted."""
    if older_than_minutes is None:
        older_than_minutes = max_window_minutes()
    cutoff = (now or datetime.now(UTC)) - timedelta(minutes=older_than_minutes)
    result = await db.execute(
        delete(AuthRateLimit).where(AuthRateLimit.attempted_at < cutoff)
    )
    await db.commit()
    return result.rowcount


async def _safe_rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except Exception as e:
        logger.debug("Rollback after failed rate limit check also failed: %s", e)
