"""
Standardized error response system.

Every error leaves the service as a JSON object with a human-readable
``error`` string, a machine-readable ``code`` and the request ID.
"""
import math
import uuid
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ErrorCode:
    """Standard error codes."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Throttling
    RATE_LIMITED = "RATE_LIMITED"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # System errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse:
    """Standard error response format."""

    @staticmethod
    def create(
        code: str,
        message: str,
        status_code: int = 500,
        extra: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> JSONResponse:
        """
        Create a standardized error response.

        Args:
            code: Machine-readable error code
            message: Human-readable error message
            status_code: HTTP status code
            extra: Additional top-level body fields (e.g. retryAfter)
            request_id: Request correlation ID (optional)
            headers: Response headers (optional)

        Returns:
            JSONResponse with standard error format
        """
        content: Dict[str, Any] = {"error": message, "code": code}

        if extra:
            content.update(extra)

        if request_id:
            content["request_id"] = request_id

        return JSONResponse(status_code=status_code, content=content, headers=headers)


class HTTPError(HTTPException):
    """
    Enhanced HTTPException with standard error response format.

    Usage:
        raise HTTPError(
            status_code=400,
            code=ErrorCode.VALIDATION_ERROR,
            message="Invalid email format",
        )
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.message = message
        self.extra = extra
        super().__init__(status_code=status_code, detail=message, headers=headers)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


async def http_error_handler(request: Request, exc: HTTPError) -> JSONResponse:
    """
    Handle HTTPError exceptions and return standardized error response.

    This should be added to FastAPI exception handlers.
    """
    return ErrorResponse.create(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        extra=exc.extra,
        request_id=_request_id(request),
        headers=exc.headers,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed JSON or wrongly typed fields are client errors (400)."""
    return ErrorResponse.create(
        code=ErrorCode.INVALID_INPUT,
        message="Invalid request body",
        status_code=status.HTTP_400_BAD_REQUEST,
        request_id=_request_id(request),
    )


# Convenience functions for common errors

def validation_error(message: str) -> HTTPError:
    """Create a 400 VALIDATION_ERROR error."""
    return HTTPError(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=ErrorCode.VALIDATION_ERROR,
        message=message,
    )


def too_many_requests(retry_after: float, message: str = "Too many requests") -> HTTPError:
    """Create a 429 RATE_LIMITED error carrying a retry hint in body and header."""
    seconds = max(1, math.ceil(retry_after))
    return HTTPError(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        code=ErrorCode.RATE_LIMITED,
        message=message,
        extra={"retryAfter": seconds},
        headers={"Retry-After": str(seconds)},
    )


def configuration_error(message: str) -> HTTPError:
    """Create a 500 CONFIGURATION_ERROR error."""
    return HTTPError(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.CONFIGURATION_ERROR,
        message=message,
    )


def internal_error(message: str = "Internal server error", extra: Optional[Dict[str, Any]] = None) -> HTTPError:
    """Create a 500 INTERNAL_ERROR error."""
    return HTTPError(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR,
        message=message,
        extra=extra,
    )
