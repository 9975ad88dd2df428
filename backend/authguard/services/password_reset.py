"""
Password reset link delivery.

The caller always sees the same success message whether or not the account
exists; only misconfiguration and delivery failures surface as errors.
"""

import enum
import logging

from authguard.core.exceptions import AuthProviderError
from authguard.services.auth_provider import AuthAdminClient
from authguard.services.email import PASSWORD_RESET_SUBJECT, EmailClient, render_password_reset_email
from authguard.utils.validators import is_allowed_host, redirect_host

logger = logging.getLogger(__name__)


class RedirectCheck(enum.Enum):
    OK = "ok"
    MALFORMED = "malformed"
    NOT_ALLOWED = "not_allowed"


class ResetLinkMissingError(Exception):
    """The auth provider accepted the request but returned no link."""


def check_redirect_url(url: str | None, allowed_hosts: list[str]) -> RedirectCheck:
    """Guard against recovery links that land on a foreign domain."""
    if not url:
        return RedirectCheck.MALFORMED
    hostname = redirect_host(url)
    if hostname is None:
        return RedirectCheck.MALFORMED
    if not is_allowed_host(hostname, allowed_hosts):
        return RedirectCheck.NOT_ALLOWED
    return RedirectCheck.OK


async def send_password_reset(
    email: str,
    redirect_url: str,
    auth_client: AuthAdminClient,
    email_client: EmailClient,
) -> bool:
    """
    Generate a recovery link and email it.

    Args:
        email: Account email (already shape-checked)
        redirect_url: Allowed redirect target
        auth_client: Auth provider admin client
        email_client: Transactional email client

    Returns:
        True if an email was sent, False if the provider refused to issue a
        link (unknown account and similar). Callers must not expose which.

    Raises:
        ResetLinkMissingError: Provider answered without a link
        EmailDeliveryError: The email could not be sent
    """
    try:
        reset_link = await auth_client.generate_recovery_link(email, redirect_url)
    except AuthProviderError as e:
        logger.warning("Recovery link not issued for %s: %s", email, e)
        return False

    if not reset_link:
        raise ResetLinkMissingError("Failed to generate reset link")

    await email_client.send(email, PASSWORD_RESET_SUBJECT, render_password_reset_email(reset_link))
    return True
