"""
VoiceNotes Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Service and API tests run against a real (in-memory SQLite) schema so
       the owner-scoped SQL is exercised, not mocked away.
How:   Environment variables are set BEFORE anything from voicenotes is
       imported, because settings and the module-level services read them
       at import time.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine: in-memory SQLite with all tables created
    │   ├── db_session: one AsyncSession for service-level tests
    │   └── test_client: HTTPX AsyncClient wired to the app + this engine
    │       └── signup: helper that registers a user, returns (user_id, headers)
    ├── mock_db_session: AsyncMock session for failure-path tests
    ├── temp_storage: temporary directory for file operations
    └── sample_image_bytes: tiny PNG payload for upload tests
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-use-0123456789"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="voicenotes_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"  # keep signup/login fast
os.environ["AUTH_RATE_LIMIT_REQUESTS"] = "10000"

import uuid  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from voicenotes.database import Base, get_db_session  # noqa: E402
import voicenotes.models  # noqa: E402,F401


@pytest_asyncio.fixture
async def db_engine():
    """
    A private in-memory database per test.

    StaticPool keeps one connection, so every session of the test sees the
    same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        async def test_failure(mock_db_session):
            mock_db_session.execute.side_effect = RuntimeError("connection reset")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
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
def sample_image_bytes():
    """PNG signature plus an IHDR-sized tail; enough for size and type checks."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    The get_db_session dependency is overridden so requests use this test's
    engine, with the same commit/rollback behaviour as production.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from voicenotes.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def signup(test_client):
    """
    Register a user through the API.

    Usage:
        user_id, headers = await signup("ada@example.com")
        await test_client.get("/api/notes", headers=headers)
    """

    async def _signup(email=None, password="correct-horse", username=None):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        body = {"email": email, "password": password}
        if username:
            body["username"] = username
        response = await test_client.post("/api/auth/signup", json=body)
        assert response.status_code == 201, response.text
        data = response.json()
        return uuid.UUID(data["userId"]), {"Authorization": f"Bearer {data['token']}"}

    return _signup
