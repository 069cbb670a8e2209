"""
Blogged Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the whole suite.
How:   Settings are driven by environment variables, so they are set here
       BEFORE anything imports `blogged`.

Fixture Hierarchy:
    Function-scoped (fresh for each test):
    ├── mock_db_session: AsyncMock session for service unit tests
    ├── temp_storage:    tmp directory for file storage tests
    ├── db_engine:       in-memory SQLite engine with the schema created
    ├── db_session:      a session on that engine for direct service calls
    ├── test_client:     httpx AsyncClient over the app, bound to db_engine
    └── register_user:   factory that signs up a user through the API
"""

import os
import tempfile
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="blogged_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import blogged.models  # noqa: E402,F401
from blogged.database import Base, enable_sqlite_foreign_keys, get_db_session  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Unit-test fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Usage:
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await post_service.delete_post(mock_db_session, identity, post_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.scalars = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an IHDR chunk header; enough for upload tests."""
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 17


# ══════════════════════════════════════════════════════════════════════════
# Database-backed fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    One in-memory SQLite database per test.

    StaticPool keeps a single connection, so every session sees the same
    database; the foreign-key pragma makes ON DELETE CASCADE work.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to a fresh app whose session dependency is
    bound to this test's database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from blogged.main import create_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def register_user(test_client):
    """
    Factory fixture: `await register_user("alice")` signs up alice through
    the API and returns the JSON body ({user, token}).
    """

    async def _register(username: str, password: str = "secret-password", **extra) -> dict:
        body = {
            "name": extra.pop("name", username.title()),
            "email": extra.pop("email", f"{username}@example.com"),
            "username": username,
            "password": password,
            **extra,
        }
        response = await test_client.post("/api/auth/register", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _register
