"""Shared test fixtures.

Every test gets its own SQLite database file and an in-memory fake Redis,
so the suite needs no external services.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from pathlib import Path

from cryptography.fernet import Fernet

os.environ["WE_JWT_SECRET"] = "test-secret-for-watchearn-suite"
os.environ["WE_PAYMENT_DETAILS_KEY"] = Fernet.generate_key().decode()
os.environ["WE_LOG_FORMAT"] = "console"
os.environ["WE_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from fakeredis import aioredis as fake_aioredis  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from watchearn.auth.service import grant_role  # noqa: E402
from watchearn.config import get_settings  # noqa: E402
from watchearn.database import close_db, create_schema, get_session_factory, init_db  # noqa: E402
from watchearn.main import create_app  # noqa: E402
from watchearn.redis_client import close_redis, use_redis  # noqa: E402
from tests.helpers import ADMIN_ID  # noqa: E402

get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are re-read per test so monkeypatched WE_* variables apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'watchearn.db'}")
    await create_schema()
    yield
    await close_db()


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[fake_aioredis.FakeRedis, None]:
    client = fake_aioredis.FakeRedis(decode_responses=True)
    use_redis(client)
    yield client
    await close_redis()


@pytest_asyncio.fixture
async def db(database: None) -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None, redis_client: fake_aioredis.FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app (lifespan is replaced by the fixtures above)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin(db: AsyncSession) -> str:
    await grant_role(db, ADMIN_ID, "admin")
    await db.commit()
    return ADMIN_ID

