"""Custom exceptions for the authguard backend."""


class ConfigurationError(Exception):
    """Raised when a setting required by an operation is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing configuration: {', '.join(missing)}")


class EmailDeliveryError(Exception):
    """Raised when the transactional email provider rejects or fails a send."""

    def __init__(self, reason: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Email delivery failed: {reason}")


class AuthProviderError(Exception):
    """Raised when the auth provider admin API returns an error."""

    def __init__(self, reason: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Auth provider error: {reason}")
