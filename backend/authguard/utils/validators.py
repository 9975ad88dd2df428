"""Input shape checks shared by the endpoints."""

import re
from urllib.parse import urlsplit

# Same shape check the web client applies: something@something.tld, no spaces
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Browsers read a backslash as a path separator; urlsplit does not
_UNSAFE_URL_CHARS = re.compile(r"[\\\x00-\x20\x7f]")


def is_valid_email(value: str | None) -> bool:
    return bool(value) and EMAIL_PATTERN.fullmatch(value) is not None


def normalize_identifier(value: str) -> str:
    """Identifiers are compared case-insensitively."""
    return value.strip().lower()


def redirect_host(url: str) -> str | None:
    """
    Return the lowercased hostname of an absolute http(s) URL.

    Returns None when the URL cannot be parsed, has no host, carries
    credentials, or contains characters browsers and urlsplit disagree on.
    """
    if _UNSAFE_URL_CHARS.search(url):
        return None
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not hostname:
        return None
    if "@" in parts.netloc:
        return None
    return hostname.lower()


def is_allowed_host(hostname: str, allowed_hosts: list[str]) -> bool:
    """Exact match or subdomain of one of the allowed suffixes."""
    return any(hostname == host or hostname.endswith(f".{host}") for host in allowed_hosts)
