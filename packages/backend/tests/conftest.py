"""Test fixtures — a fresh app, realtime hub, and in-memory database per test.

Learn: Each test gets its own engine on an in-memory SQLite database
(StaticPool keeps the single connection alive so every session sees the
same tables). The app is built per test with create_app(realtime), so
the update queue and connection registry never leak between tests.
"""

import os

os.environ.setdefault("BOSSME_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from bossme.auth.jwt import create_access_token
from bossme.db.engine import get_db
from bossme.db.models import Base, User
from bossme.main import create_app
from bossme.realtime import create_realtime


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
def realtime():
    return create_realtime(capacity=100, send_timeout=0.2)


@pytest.fixture()
def app(realtime):
    return create_app(realtime)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway database."""
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(app, db_session):
    """HTTP client with the app's get_db pointed at the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    """Factory: insert a user with the given role, return it."""

    async def _make(username: str = "alice", role: str = "user", is_deleted: bool = False) -> User:
        user = User(username=username, role=role, is_deleted=is_deleted)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def auth_headers():
    """Factory: bearer headers for a user, as the OAuth login would mint."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(str(user.public_id))}"}

    return _headers
