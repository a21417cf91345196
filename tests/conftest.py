"""
Pytest configuration and shared fixtures for the PrepTrack test suite.
"""

import os
import random
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["PT_ENVIRONMENT"] = "test"
os.environ["PT_DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["PT_JWT_SECRET"] = "test-secret"
os.environ["PT_JWT_ALGORITHM"] = "HS256"
# Disable rate limiting for tests
os.environ["PT_RATE_LIMIT_REQUESTS"] = "999999"
os.environ["PT_AUTH_USERS"] = '{"alice": "alice-secret", "root": "root-secret"}'
os.environ["PT_ADMIN_USERNAMES"] = '["root"]'

from preptrack.auth import issue_token  # noqa: E402
from preptrack.config import get_settings  # noqa: E402
from preptrack.db.base import Base, get_db  # noqa: E402
from preptrack.models import Category, Item, Role  # noqa: E402

settings = get_settings()


class SeededItem(NamedTuple):
    id: int
    title: str
    category: Category
    subcategory: str


CATALOG = [
    ("Two Sum", Category.dsa, "arrays"),
    ("Best Time to Buy and Sell Stock", Category.dsa, "arrays"),
    ("Valid Anagram", Category.dsa, "strings"),
    ("Parking Lot", Category.lld, "lld-interview-questions"),
    ("Singleton Pattern", Category.lld, "design-patterns-creational"),
    ("Design a URL Shortener", Category.hld, "interview questions"),
    ("Design Twitter", Category.hld, "interview questions"),
    ("Consistent Hashing", Category.hld, "distributed system concepts"),
    ("Mock Test and Revise", Category.miscellaneous, "test_n_revise"),
    ("Designing Data-Intensive Applications", Category.miscellaneous, "books"),
]


class FixedClock:
    """Controllable replacement for ``datetime.now(timezone.utc)``."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def catalog(db_session):
    """Ten catalog items across all four categories."""
    items = [
        Item(
            title=title,
            link=f"https://example.com/{index}",
            category=category,
            subcategory=subcategory,
        )
        for index, (title, category, subcategory) in enumerate(CATALOG, start=1)
    ]
    db_session.add_all(items)
    await db_session.commit()
    # Plain snapshots stay readable after a service rolls the session back
    return [
        SeededItem(item.id, item.title, item.category, item.subcategory)
        for item in items
    ]


@pytest.fixture
def user_id():
    return 1


@pytest.fixture
def other_user_id():
    return 2


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def test_jwt_token(user_id):
    """Access token for a regular user."""
    token, _ = issue_token(settings, user_id, Role.user)
    return token


@pytest.fixture
def admin_jwt_token():
    token, _ = issue_token(settings, 99, Role.admin)
    return token


@pytest.fixture
def app(session_factory):
    """Full application wired to the per-test database."""
    from preptrack.server import create_app

    test_app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    test_app.dependency_overrides[get_db] = override_get_db
    return test_app


@pytest_asyncio.fixture
async def api_client(app):
    """Unauthenticated async client over ASGI."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_client(api_client, test_jwt_token):
    """Client authenticated as the regular test user."""
    api_client.headers["Authorization"] = f"Bearer {test_jwt_token}"
    return api_client
