"""Shared test fixtures.

Each test gets its own SQLite database file with the schema created from the
ORM metadata and the badge + content catalog seeded. Redis is never
initialized, so rate limiting passes through and /ready reports degraded.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.auth.jwt import create_access_token
from tsquest.config import get_settings
from tsquest.content.seed import seed_content
from tsquest.database import close_db, get_engine, get_session, init_db
from tsquest.db.base import Base
from tsquest.db.models import User
from tsquest.gamification.seed import seed_badges
from tsquest.main import create_app


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch) -> AsyncGenerator[None, None]:
    """Fresh schema and seeded catalog in a per-test SQLite file."""
    monkeypatch.setenv("TSQ_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'tsquest.db'}")
    monkeypatch.setenv("TSQ_LOG_FORMAT", "console")
    monkeypatch.setenv("TSQ_SEED_ON_STARTUP", "false")
    get_settings.cache_clear()

    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async for session in get_session():
        await seed_badges(session)
        await seed_content(session)

    yield

    await close_db()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service calls and assertions."""
    async for session in get_session():
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against a fresh app."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(
    db: AsyncSession,
    email: str = "learner@example.com",
    *,
    is_admin: bool = False,
    has_premium_access: bool = False,
) -> User:
    """Insert a user directly (no password, no stats row)."""
    user = User(
        email=email,
        display_name=email.split("@")[0],
        is_admin=is_admin,
        has_premium_access=has_premium_access,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.commit()
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    return await make_user(db_session)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", is_admin=True)


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client authenticated as the default learner."""
    client.headers.update(auth_headers(user))
    return client


@pytest.fixture
def level_one_challenges() -> list[str]:
    """Every challenge id in level 1 of the seeded course."""
    return ["1-1-1", "1-1-2", "1-2-1", "1-2-2", "1-3-1"]
