"""
Transactional email delivery through the Resend HTTP API.

Also holds the two fixed HTML templates (lockout alert, password reset).
"""

import html
import logging
from typing import Any

import httpx

from authguard.core.config import settings
from authguard.core.exceptions import ConfigurationError, EmailDeliveryError

logger = logging.getLogger(__name__)

LOCKOUT_SUBJECT = "Security Alert: Account Temporarily Locked"
PASSWORD_RESET_SUBJECT = "Reset Your Password"

ATTEMPT_TYPE_LABELS = {
    "login": "sign-in",
    "signup": "sign-up",
    "password_reset": "password reset",
}

_PAGE_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f9fafb;"
)
_CARD_STYLE = "background-color: white; border-radius: 8px; padding: 32px; box-shadow: 0 1px 3px rgba(0,0,0,0.1);"
_TEXT_STYLE = "color: #4b5563; font-size: 16px; line-height: 1.6;"
_FOOTER_STYLE = "color: #9ca3af; font-size: 12px; text-align: center;"


def attempt_type_label(attempt_type: str) -> str:
    return ATTEMPT_TYPE_LABELS.get(attempt_type, "sign-up")


def _page(body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_PAGE_STYLE}">
  <div style="{_CARD_STYLE}">
{body}
  </div>
</body>
</html>
"""


def render_lockout_email(attempt_type: str, lockout_minutes: int) -> str:
    """HTML body for the account-locked alert."""
    label = attempt_type_label(attempt_type)
    return _page(f"""
    <h1 style="color: #111827; font-size: 24px; font-weight: 600; text-align: center; margin-bottom: 16px;">
      Account Temporarily Locked
    </h1>
    <p style="{_TEXT_STYLE} margin-bottom: 16px;">
      We detected multiple failed {label} attempts on your account. For your security, we've temporarily locked access.
    </p>
    <div style="background-color: #fef3c7; border-left: 4px solid #f59e0b; padding: 16px; border-radius: 4px; margin-bottom: 24px;">
      <p style="color: #92400e; font-size: 14px; margin: 0;">
        <strong>Your account will be unlocked in {int(lockout_minutes)} minutes.</strong>
      </p>
    </div>
    <p style="{_TEXT_STYLE} margin-bottom: 16px;">
      If this was you, please wait and try again later. If you've forgotten your password, you can reset it from the login page.
    </p>
    <p style="{_TEXT_STYLE} margin-bottom: 24px;">
      <strong>If this wasn't you</strong>, someone may be trying to access your account. We recommend:
    </p>
    <ul style="color: #4b5563; font-size: 14px; line-height: 1.8; padding-left: 20px; margin-bottom: 24px;">
      <li>Changing your password immediately once access is restored</li>
      <li>Using a strong, unique password</li>
      <li>Reviewing any recent account activity</li>
    </ul>
    <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
    <p style="{_FOOTER_STYLE}">
      This is an automated security notification. Please do not reply to this email.
    </p>""")


def render_password_reset_email(reset_link: str) -> str:
    """HTML body carrying the one-time recovery link."""
    link = html.escape(reset_link, quote=True)
    return _page(f"""
    <h1 style="color: #111827; font-size: 24px; font-weight: 600; text-align: center; margin-bottom: 16px;">
      Reset Your Password
    </h1>
    <p style="{_TEXT_STYLE} margin-bottom: 24px; text-align: center;">
      We received a request to reset your password. Click the button below to create a new password.
    </p>
    <div style="text-align: center; margin-bottom: 24px;">
      <a href="{link}" style="display: inline-block; background-color: #b8860b; color: white; padding: 14px 32px; border-radius: 8px; text-decoration: none; font-weight: 600; font-size: 16px;">
        Reset Password
      </a>
    </div>
    <p style="color: #6b7280; font-size: 14px; text-align: center; margin-bottom: 16px;">
      This link will expire in 1 hour.
    </p>
    <div style="background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin-bottom: 24px;">
      <p style="color: #4b5563; font-size: 14px; margin: 0;">
        If you didn't request a password reset, you can safely ignore this email. Your password won't be changed.
      </p>
    </div>
    <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
    <p style="{_FOOTER_STYLE}">
      If the button doesn't work, copy and paste this link into your browser:<br>
      <a href="{link}" style="color: #6b7280; word-break: break-all;">{link}</a>
    </p>""")


class EmailClient:
    """Thin async client for the Resend ``/emails`` endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender or settings.EMAIL_FROM
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.RESEND_API_URL,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, to: str, subject: str, html_body: str) -> dict[str, Any]:
        """
        Send one HTML email.

        Args:
            to: Recipient address
            subject: Subject line
            html_body: Rendered HTML

        Returns:
            Provider response body (contains the message id)

        Raises:
            ConfigurationError: No API key configured
            EmailDeliveryError: Provider unreachable or rejected the message
        """
        if not self.configured:
            raise ConfigurationError(["RESEND_API_KEY"])

        try:
            response = await self._client.post(
                "/emails",
                json={
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html_body,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"request failed: {e}") from e

        if response.is_error:
            raise EmailDeliveryError(
                f"provider returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        logger.info("Email '%s' sent to %s (id=%s)", subject, to, data.get("id"))
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
