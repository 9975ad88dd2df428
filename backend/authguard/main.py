import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.api.deps import close_dependencies, get_db
from authguard.api.notifications import router as notifications_router
from authguard.api.password_reset import router as password_reset_router
from authguard.api.rate_limit import router as rate_limit_router
from authguard.core.config import APP_VERSION, settings
from authguard.core.errors import HTTPError, http_error_handler, request_validation_error_handler
from authguard.core.logging import setup_logging
from authguard.core.middleware import (
    ErrorResponseMiddleware,
    RequestIDMiddleware,
    RequestValidationMiddleware,
    add_security_headers,
)
from authguard.core.redis import close_redis, get_redis, redis_enabled
from authguard.services.scheduler import scheduler_service

logger = logging.getLogger(__name__)

# Headers sent by the web and mobile clients' function invocations
CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-supabase-client-platform",
    "x-supabase-client-platform-version",
    "x-supabase-client-runtime",
    "x-supabase-client-runtime-version",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    # Setup structured logging first
    setup_logging()

    missing = settings.missing_password_reset_config()
    if missing:
        logger.warning(
            "Password reset and lockout emails disabled until configured: %s",
            ", ".join(missing),
        )

    logger.info("Starting scheduler service")
    scheduler_service.start()

    yield

    # Shutdown
    logger.info("Stopping scheduler service")
    scheduler_service.stop()

    await close_dependencies()

    logger.info("Closing Redis connection")
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
    redirect_slashes=False,
)

# Register custom exception handlers for standardized error responses
app.add_exception_handler(HTTPError, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)

# Security headers middleware
app.middleware("http")(add_security_headers)

# Request validation middleware
app.add_middleware(RequestValidationMiddleware)

# Error response middleware (catches anything the handlers did not)
app.add_middleware(ErrorResponseMiddleware)

# Request ID middleware (outside the error handler so errors carry the ID)
app.add_middleware(RequestIDMiddleware)

# CORS middleware (outermost so preflight requests short-circuit)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
    expose_headers=["Retry-After", "X-Request-ID"],
)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for container orchestration.

    Returns 200 if the attempt log database is reachable, 503 otherwise.
    Redis is reported but not critical: throttling fails open without it.
    """
    checks = {
        "status": "healthy",
        "version": APP_VERSION,
        "database": False,
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        checks["status"] = "unhealthy"

    if redis_enabled():
        try:
            redis = await get_redis()
            checks["redis"] = bool(await redis.ping())
        except Exception as e:
            logger.warning("Redis health check failed: %s", e)
            checks["redis"] = False

    status_code = 200 if checks["database"] else 503
    return JSONResponse(content=checks, status_code=status_code)


# Include routers with /api prefix
app.include_router(rate_limit_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(password_reset_router, prefix="/api")
