"""Request utility functions."""

from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """
    Extract real client IP from proxy headers.

    Checks headers in order:
    1. X-Forwarded-For (may contain chain: "client, proxy1, proxy2")
    2. X-Real-IP (single IP from nginx)

    The service always runs behind a proxy, so a request without either
    header lands in the shared "unknown" bucket.
    """
    # X-Forwarded-For may contain chain of IPs
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in chain is the original client
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    # X-Real-IP is typically set by nginx
    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_CLIENT
