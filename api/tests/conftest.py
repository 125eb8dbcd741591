"""
Shared test fixtures for BeardedVibes API tests.

Provides database session management, test clients, storage in a temp
directory, and user/post fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.auth.jwt import create_session_token
from app.config import settings
from app.database import Base, get_db, register_sqlite_pragmas
from app.main import app
from app.middleware.rate_limit import limiter

# Import models so they're registered with Base.metadata before table creation
from app.models import Comment, Follow, HistoryView, Like, Post, User, WatchlistEntry  # noqa: F401
from app.services.storage import LocalStorage, get_storage
from tests.factories import create_post, create_user

# Test database URL (uses separate test database)
TEST_DATABASE_URL = settings.test_database_url

# Create test engine with NullPool to avoid connection issues
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
    echo=False,
)
register_sqlite_pragmas(test_engine)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# --- Rate Limiter Reset Fixture ---


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset rate limiter before each test to ensure test isolation."""
    if hasattr(limiter, "_limiter") and limiter._limiter:
        storage = limiter._limiter.storage
        if hasattr(storage, "storage"):
            storage.storage.clear()
    yield


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create tables before each test function, drop after.
    Provides isolated database state per test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# --- Storage Fixtures ---


@pytest.fixture
def uploads_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temp directory used both for streamed uploads and local storage."""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "uploads_dir", str(path))
    return path


@pytest.fixture
def storage(uploads_dir: Path) -> LocalStorage:
    return LocalStorage(uploads_dir)


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession, storage: LocalStorage
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client configured for testing.
    Overrides the database and storage dependencies.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Authentication Helper Fixtures ---


# http.cookiejar files cookies for a dotless host such as "test" under "test.local"
COOKIE_DOMAIN = "test.local"


@pytest.fixture
def set_session(async_client: AsyncClient) -> Callable[[str], None]:
    """Store a raw session token where the cookie jar will replace it on Set-Cookie."""

    def _set_session(token: str) -> None:
        async_client.cookies.set(settings.session_cookie_name, token, domain=COOKIE_DOMAIN)

    return _set_session


@pytest.fixture
def login(set_session: Callable[[str], None]) -> Callable[[User], str]:
    """Factory fixture that signs the client in as a user via the session cookie."""

    def _login(user: User) -> str:
        token = create_session_token(user)
        set_session(token)
        return token

    return _login


@pytest.fixture
def logout(async_client: AsyncClient) -> Callable[[], None]:
    def _logout() -> None:
        async_client.cookies.clear()

    return _logout


@pytest.fixture
def service_token(monkeypatch: pytest.MonkeyPatch) -> str:
    """Configure the bot's shared secret."""
    token = "test-bot-service-token"
    monkeypatch.setattr(settings, "bot_service_token", token)
    return token


# --- User Fixtures ---


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A standard Discord user."""
    return await create_user(db_session, username="testuser", discord_id="111")


@pytest_asyncio.fixture
async def second_user(db_session: AsyncSession) -> User:
    """A second user for ownership/authorization scenarios."""
    return await create_user(db_session, username="seconduser", discord_id="222")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, username="adminuser", discord_id="999", is_admin=True)


@pytest_asyncio.fixture
async def test_owner(db_session: AsyncSession) -> User:
    return await create_user(
        db_session, username="owneruser", discord_id="888", is_admin=True, is_owner=True
    )


# --- Post Fixtures ---


@pytest_asyncio.fixture
async def published_post(db_session: AsyncSession, test_user: User, uploads_dir: Path) -> Post:
    return await create_post(db_session, test_user, title="Published video", uploads_dir=uploads_dir)


@pytest_asyncio.fixture
async def draft_post(db_session: AsyncSession, test_user: User, uploads_dir: Path) -> Post:
    return await create_post(
        db_session, test_user, status="draft", title="Draft video", uploads_dir=uploads_dir
    )


# --- Utility Fixtures ---


@pytest.fixture
def frozen_time():
    """
    Fixture for time-based testing using freezegun.

    Usage:
        with frozen_time("2026-10-17 12:00:00"):
            # time is frozen
    """
    from freezegun import freeze_time

    return freeze_time
