"""Lockout notification endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from authguard.api.deps import get_lockout_notification_throttle, get_lockout_notifier
from authguard.core.errors import configuration_error, too_many_requests, validation_error
from authguard.core.exceptions import ConfigurationError, EmailDeliveryError
from authguard.schemas.notification import LockoutNotification, LockoutNotificationResponse
from authguard.services.lockout import LockoutNotifier
from authguard.services.throttle import IPThrottle
from authguard.utils.request import get_client_ip
from authguard.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.post("/send-lockout-notification", response_model=LockoutNotificationResponse)
async def send_lockout_notification(
    request: Request,
    body: LockoutNotification,
    throttle: Annotated[IPThrottle, Depends(get_lockout_notification_throttle)],
    notifier: Annotated[LockoutNotifier, Depends(get_lockout_notifier)],
):
    """Send the account-locked security alert. The throttle keeps this from becoming a spam relay."""
    decision = await throttle.check(get_client_ip(request))
    if not decision.allowed:
        raise too_many_requests(decision.retry_after)

    if not notifier.email_client.configured:
        raise configuration_error("RESEND_API_KEY is not configured")

    if not body.email:
        raise validation_error("Email is required")
    if not is_valid_email(body.email):
        raise validation_error("Invalid email format")

    try:
        data = await notifier.send(body)
    except ConfigurationError as e:
        raise configuration_error(str(e)) from e
    except EmailDeliveryError as e:
        logger.exception("Error sending lockout notification")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e)},
        )

    return LockoutNotificationResponse(success=True, data=data)
