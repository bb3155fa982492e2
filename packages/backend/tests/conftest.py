"""Test fixtures — a fresh database per test, real auth pipeline.

Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine + schema (in-memory SQLite by default,
   or CAMPUSHUB_TEST_DATABASE_URL for a throwaway PostgreSQL database).
2. The app's get_db dependency is overridden to hand out the test's
   session, so HTTP calls and direct service calls see the same data.
3. Auth is NOT mocked: tokens are issued and validated for real.

Environment defaults are set before campushub is imported so the
settings singleton picks them up (cheap bcrypt rounds, SQLite engine).
"""

import os

os.environ.setdefault("CAMPUSHUB_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CAMPUSHUB_BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from campushub.db.engine import get_db  # noqa: E402
from campushub.db.models import Base  # noqa: E402
from campushub.main import app  # noqa: E402

TEST_DB_URL = os.environ.get("CAMPUSHUB_TEST_DATABASE_URL", "sqlite+aiosqlite://")

PASSWORD = "pw123456"


def _test_engine():
    if TEST_DB_URL.startswith("sqlite"):
        # One shared connection, otherwise every checkout is a new empty DB.
        return create_async_engine(
            TEST_DB_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(TEST_DB_URL)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session over a freshly created schema."""
    engine = _test_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with the app's get_db pointed at the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def registered(client):
    """Register alice@x.com; returns the register response body."""
    r = await client.post(
        "/api/auth/register",
        json={
            "name": "Alice",
            "email": "alice@x.com",
            "password": PASSWORD,
            "idNumber": "21CS042",
            "department": "CSE",
        },
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest_asyncio.fixture()
async def auth_headers(registered):
    return {"Authorization": f"Bearer {registered['token']}"}
