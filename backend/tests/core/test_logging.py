"""Tests for log redaction."""

from authguard.core.logging import redact_sensitive_data, redact_string


def test_sensitive_keys_are_redacted():
    event = {
        "event": "recovery link issued",
        "action_link": "https://auth.test/verify?token=abc",
        "api_key": "re_123",
        "Authorization": "Bearer xyz",
        "attempt_type": "login",
    }

    redacted = redact_sensitive_data(None, "info", event)

    assert redacted["action_link"] == "***REDACTED***"
    assert redacted["api_key"] == "***REDACTED***"
    assert redacted["Authorization"] == "***REDACTED***"
    assert redacted["attempt_type"] == "login"
    assert event["api_key"] == "re_123"


def test_emails_are_masked_in_messages():
    redacted = redact_sensitive_data(None, "info", {"event": "Rate limit exceeded for alice@example.com (login)"})

    assert redacted["event"] == "Rate limit exceeded for a***@example.com (login)"


def test_long_tokens_are_shortened():
    assert redact_string("abcdefghijklmnopqrstuvwxyz0123") == "abcdefgh...0123"


def test_short_values_untouched():
    assert redact_string("login") == "login"
    assert redact_string("sign in failed") == "sign in failed"
