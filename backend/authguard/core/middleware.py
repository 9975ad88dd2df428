"""Custom middleware for request validation and error handling."""

import logging
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to request state, log context and the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        # Bind request_id to all log entries during this request
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for request validation and security checks.

    Enforces:
    - Request size limits
    - Content-Type validation for POST/PUT/PATCH
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 64 * 1024,
        enforce_content_type: bool = True,
    ) -> None:
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enforce_content_type = enforce_content_type

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and apply validation."""
        request_id = getattr(request.state, "request_id", "unknown")

        # Check content-length for size limits
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            if size > self.max_request_size:
                logger.warning("Request too large: %d bytes", size)
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "error": f"Request too large. Maximum size is {self.max_request_size} bytes",
                        "code": "REQUEST_TOO_LARGE",
                        "request_id": request_id,
                    },
                )

        # Validate Content-Type for state-changing methods
        if self.enforce_content_type and request.method in {"POST", "PUT", "PATCH"}:
            content_type = request.headers.get("content-type", "")
            if not content_type.startswith("application/json"):
                logger.warning("Invalid Content-Type: %s", content_type)
                return JSONResponse(
                    status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                    content={
                        "error": "Content-Type must be application/json",
                        "code": "INVALID_CONTENT_TYPE",
                        "request_id": request_id,
                    },
                )

        return await call_next(request)


class ErrorResponseMiddleware(BaseHTTPMiddleware):
    """Middleware to standardize error responses.

    Catches exceptions that escaped the route handlers and returns a JSON
    body without any stack trace.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle errors."""
        try:
            return await call_next(request)
        except Exception:
            request_id = getattr(request.state, "request_id", "unknown")
            logger.exception("Request error: %s %s", request.method, request.url.path)

            return JSONResponse(
                content={
                    "error": "An unexpected error occurred",
                    "code": "INTERNAL_ERROR",
                    "request_id": request_id,
                },
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )


async def add_security_headers(request: Request, call_next):
    """Add OWASP-recommended security headers to all responses."""
    response = await call_next(request)

    # Prevent MIME type sniffing
    response.headers["X-Content-Type-Options"] = "nosniff"

    # Prevent clickjacking
    response.headers["X-Frame-Options"] = "DENY"

    # Referrer policy for privacy
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    # JSON API: nothing should ever be rendered or embedded
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

    return response
