"""Password reset email endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from authguard.api.deps import get_auth_client, get_email_client, get_password_reset_throttle
from authguard.core.config import settings
from authguard.core.errors import configuration_error, internal_error, too_many_requests, validation_error
from authguard.core.exceptions import EmailDeliveryError
from authguard.schemas.password_reset import PasswordResetRequest, PasswordResetResponse
from authguard.services.auth_provider import AuthAdminClient
from authguard.services.email import EmailClient
from authguard.services.password_reset import (
    RedirectCheck,
    ResetLinkMissingError,
    check_redirect_url,
    send_password_reset,
)
from authguard.services.throttle import IPThrottle
from authguard.utils.request import get_client_ip
from authguard.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["password-reset"])


@router.post("/send-password-reset", response_model=PasswordResetResponse)
async def send_password_reset_endpoint(
    request: Request,
    body: PasswordResetRequest,
    throttle: Annotated[IPThrottle, Depends(get_password_reset_throttle)],
    auth_client: Annotated[AuthAdminClient, Depends(get_auth_client)],
    email_client: Annotated[EmailClient, Depends(get_email_client)],
) -> PasswordResetResponse:
    """
    Email a one-time recovery link.

    Responds with the same body whether or not the account exists.
    """
    decision = await throttle.check(get_client_ip(request))
    if not decision.allowed:
        raise too_many_requests(decision.retry_after, "Too many requests. Please try again later.")

    if not email_client.configured:
        raise configuration_error("RESEND_API_KEY is not configured")
    if not auth_client.configured:
        raise configuration_error("Auth provider configuration is missing")

    if not body.email:
        raise validation_error("Email is required")
    if not is_valid_email(body.email):
        raise validation_error("Invalid email format")

    redirect_check = check_redirect_url(body.redirect_url, settings.allowed_redirect_hosts)
    if redirect_check is RedirectCheck.MALFORMED:
        raise validation_error("Invalid redirect URL format")
    if redirect_check is RedirectCheck.NOT_ALLOWED:
        logger.warning("Rejected password reset redirect to untrusted host: %s", body.redirect_url)
        raise validation_error("Invalid redirect URL")

    try:
        await send_password_reset(body.email, body.redirect_url, auth_client, email_client)
    except (ResetLinkMissingError, EmailDeliveryError) as e:
        logger.error("Error in password reset: %s", e)
        raise internal_error(str(e)) from e

    return PasswordResetResponse()
