"""Rate limit check endpoint called before every sign-in, sign-up or reset attempt."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.api.deps import get_check_rate_limit_throttle, get_db, get_lockout_dispatcher
from authguard.core.errors import too_many_requests, validation_error
from authguard.schemas.notification import LockoutNotification
from authguard.schemas.rate_limit import RateLimitCheckRequest, RateLimitCheckResponse
from authguard.services.lockout import LockoutDispatcher
from authguard.services.rate_limit import check_rate_limit, get_policy, resolve_attempt_type
from authguard.services.throttle import IPThrottle
from authguard.utils.request import get_client_ip
from authguard.utils.validators import is_valid_email, normalize_identifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rate-limit"])


@router.post("/check-rate-limit", response_model=RateLimitCheckResponse)
async def check_rate_limit_endpoint(
    request: Request,
    body: RateLimitCheckRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    throttle: Annotated[IPThrottle, Depends(get_check_rate_limit_throttle)],
    dispatcher: Annotated[LockoutDispatcher, Depends(get_lockout_dispatcher)],
) -> RateLimitCheckResponse:
    """
    Check whether an attempt is allowed and consume one slot if it is.

    A check made only to test eligibility still counts as an attempt.
    """
    decision = await throttle.check(get_client_ip(request))
    if not decision.allowed:
        raise too_many_requests(decision.retry_after)

    if not body.identifier or not body.identifier.strip():
        raise validation_error("Identifier is required")

    identifier = normalize_identifier(body.identifier)
    if not is_valid_email(identifier):
        raise validation_error("Invalid identifier format")

    attempt_type = resolve_attempt_type(body.attempt_type)
    result = await check_rate_limit(db, identifier, attempt_type)

    if not result.allowed:
        await dispatcher.dispatch(
            LockoutNotification(
                email=identifier,
                attempt_type=attempt_type.value,
                lockout_minutes=get_policy(attempt_type).window_minutes,
            )
        )

    return RateLimitCheckResponse(
        allowed=result.allowed,
        remaining=result.remaining,
        retry_after=result.retry_after,
    )
