from authguard.models.auth_rate_limit import AuthRateLimit

__all__ = [
    "AuthRateLimit",
]
