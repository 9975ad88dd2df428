"""Database session configuration with connection pooling."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from authguard.core.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (local dev) has no server-side pool to tune
    if url.startswith("sqlite"):
        return {"echo": settings.DEBUG}
    return {
        "echo": settings.DEBUG,
        # Connection pool settings (configurable via env vars)
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": 30,  # Seconds to wait before giving up on getting a connection
        "pool_recycle": 3600,  # Recycle connections after 1 hour (prevents stale connections)
        "pool_pre_ping": True,  # Verify connections before using them
    }


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
