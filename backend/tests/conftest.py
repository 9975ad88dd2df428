"""Pytest fixtures for backend tests."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from authguard.api import deps
from authguard.core.config import settings
from authguard.core.exceptions import AuthProviderError, EmailDeliveryError
from authguard.db.base import Base
from authguard.main import app
from authguard.services.lockout import LockoutDispatcher, LockoutNotifier
from authguard.services.throttle import InMemoryThrottleStore, IPThrottle

# In-memory SQLite shared across the connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeEmailClient:
    """Records sends instead of calling the email provider."""

    def __init__(self, configured: bool = True, fail: bool = False):
        self.configured = configured
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send(self, to: str, subject: str, html_body: str) -> dict[str, Any]:
        if self.fail:
            raise EmailDeliveryError("provider returned 503: unavailable", status_code=503)
        self.sent.append({"to": to, "subject": subject, "html": html_body})
        return {"id": f"email-{len(self.sent)}"}

    async def aclose(self) -> None:
        pass


class FakeAuthClient:
    """Stands in for the auth provider admin API."""

    def __init__(self, configured: bool = True, known_emails: set[str] | None = None, link: str | None = None):
        self.configured = configured
        self.known_emails = known_emails if known_emails is not None else {"user@example.com"}
        self.link = link
        self.calls: list[tuple[str, str]] = []

    async def generate_recovery_link(self, email: str, redirect_to: str) -> str | None:
        self.calls.append((email, redirect_to))
        if email not in self.known_emails:
            raise AuthProviderError("User not found", status_code=404)
        if self.link is not None:
            return self.link
        return f"https://auth.example.test/verify?token=abc123&type=recovery&redirect_to={redirect_to}"

    async def aclose(self) -> None:
        pass


def _provide(value):
    """Dependency override returning one shared object on every request."""
    return lambda: value


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def throttle_store() -> InMemoryThrottleStore:
    return InMemoryThrottleStore(eviction_probability=0.0)


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def failing_email_client() -> FakeEmailClient:
    return FakeEmailClient(fail=True)


@pytest.fixture
def auth_client() -> FakeAuthClient:
    return FakeAuthClient()


@pytest_asyncio.fixture
async def dispatcher(email_client, throttle_store) -> AsyncGenerator[LockoutDispatcher, None]:
    dispatcher = LockoutDispatcher(
        notifier=LockoutNotifier(email_client),
        dedup_store=throttle_store,
    )
    yield dispatcher
    await dispatcher.drain()


@pytest_asyncio.fixture(scope="function")
async def client(
    test_session: AsyncSession,
    throttle_store: InMemoryThrottleStore,
    email_client: FakeEmailClient,
    auth_client: FakeAuthClient,
    dispatcher: LockoutDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client wired to the test database and fake providers."""

    async def override_db():
        yield test_session

    throttles = {
        deps.get_check_rate_limit_throttle: IPThrottle(
            "check-rate-limit",
            settings.CHECK_RATE_LIMIT_IP_MAX_REQUESTS,
            settings.CHECK_RATE_LIMIT_IP_WINDOW_SECONDS,
            throttle_store,
        ),
        deps.get_lockout_notification_throttle: IPThrottle(
            "send-lockout-notification",
            settings.LOCKOUT_NOTIFICATION_IP_MAX_REQUESTS,
            settings.LOCKOUT_NOTIFICATION_IP_WINDOW_SECONDS,
            throttle_store,
        ),
        deps.get_password_reset_throttle: IPThrottle(
            "send-password-reset",
            settings.PASSWORD_RESET_IP_MAX_REQUESTS,
            settings.PASSWORD_RESET_IP_WINDOW_SECONDS,
            throttle_store,
        ),
    }

    app.dependency_overrides[deps.get_db] = override_db
    for dependency, throttle in throttles.items():
        app.dependency_overrides[dependency] = _provide(throttle)
    app.dependency_overrides[deps.get_email_client] = lambda: email_client
    app.dependency_overrides[deps.get_auth_client] = lambda: auth_client
    app.dependency_overrides[deps.get_lockout_notifier] = lambda: LockoutNotifier(email_client)
    app.dependency_overrides[deps.get_lockout_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Forwarded-For": "203.0.113.10"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
