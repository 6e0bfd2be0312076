"""Test configuration and fixtures.

Provides isolated test fixtures for:
- Database sessions on a fresh in-memory SQLite schema
- An in-memory stand-in for the Upstash Redis client
- HTTP client bound to an app with test services
- Authenticated user and admin fixtures
"""

import fnmatch
import os
import time
from collections.abc import AsyncGenerator, Callable
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

# Settings are cached on first use, so the environment is fixed before any
# blog_api import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["UPSTASH_REDIS_REST_URL"] = ""
os.environ["UPSTASH_REDIS_REST_TOKEN"] = ""
os.environ["AI_API_KEY"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from blog_api.core.security import create_access_token, get_password_hash
from blog_api.db.models import Base, Category, Post, User
from blog_api.db.session import get_db
from blog_api.main import create_app
from blog_api.services.assistant import AssistantService
from blog_api.services.cache import KeyValueStore
from blog_api.services.container import ServiceContainer

TEST_DATABASE_URL = "sqlite+aiosqlite://"
API = "/api/v1"


# =============================================================================
# Fake Upstash Redis
# =============================================================================

class FakeRedis:
    """In-memory replacement for ``upstash_redis.asyncio.Redis``.

    Only the calls the key-value store makes are implemented. Expiry is
    driven by ``clock`` so tests can move time forward.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock
        self.data: dict[str, tuple[str, float | None]] = {}
        self.fail = False
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis unreachable")

    def _live(self, key: str) -> str | None:
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self.data[key]
            return None
        return value

    async def ping(self) -> str:
        self._check()
        return "PONG"

    async def get(self, key: str) -> str | None:
        self._check()
        return self._live(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.data[key] = (value, self.clock() + ex if ex else None)
        return True

    async def keys(self, pattern: str) -> list[str]:
        self._check()
        return [
            k for k in list(self.data)
            if self._live(k) is not None and fnmatch.fnmatchcase(k, pattern)
        ]

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for k in keys if self.data.pop(k, None) is not None)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Settable replacement for ``time.time``."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Cache Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest_asyncio.fixture
async def store(fake_redis: FakeRedis) -> KeyValueStore:
    """A connected key-value store over the fake client."""
    kv = KeyValueStore(fake_redis)
    await kv.connect()
    assert kv.is_available
    return kv


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with fresh schema for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session with transaction rollback."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Service & HTTP Client Fixtures
# =============================================================================

def completion(content: str) -> SimpleNamespace:
    """Shape of an OpenAI chat completion, reduced to what the assistant reads."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def mock_ai_client() -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion("Hello from the assistant"))
    client.close = AsyncMock()
    return client


@pytest_asyncio.fixture
async def services(
    fake_redis: FakeRedis, mock_ai_client: MagicMock
) -> AsyncGenerator[ServiceContainer, None]:
    container = ServiceContainer(
        store=KeyValueStore(fake_redis),
        assistant=AssistantService(client=mock_ai_client, models=["test-model"]),
        notification_cleanup=False,
    )
    await container.startup()
    yield container
    await container.shutdown()


@pytest_asyncio.fixture(scope="function")
async def client(
    test_db: AsyncSession, services: ServiceContainer
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database override."""
    app = create_app(services)

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Authentication Fixtures
# =============================================================================

async def _create_user(
    db: AsyncSession, email: str, username: str, password: str, role: str = "user"
) -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=await get_password_hash(password),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest_asyncio.fixture(scope="function")
async def test_user(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "test@example.com", "testuser", "testpassword123")


@pytest_asyncio.fixture(scope="function")
async def second_user(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "second@example.com", "seconduser", "secondpass123")


@pytest_asyncio.fixture(scope="function")
async def admin_user(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "admin@example.com", "adminuser", "adminpass123", "admin")


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    return bearer(test_user)


@pytest.fixture
def second_headers(second_user: User) -> dict[str, str]:
    return bearer(second_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


# =============================================================================
# Content Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def category(test_db: AsyncSession) -> Category:
    cat = Category(name="Technology", slug="technology", description="Tech posts")
    test_db.add(cat)
    await test_db.commit()
    await test_db.refresh(cat)
    return cat


@pytest_asyncio.fixture(scope="function")
async def published_post(client: AsyncClient, auth_headers: dict[str, str]) -> dict:
    """A published post created through the API (author: ``test_user``)."""
    resp = await client.post(
        f"{API}/posts",
        json={"title": "Hello World", "content": "First post", "status": "published"},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture(scope="function")
async def draft_post(test_db: AsyncSession, test_user: User) -> Post:
    post = Post(
        title="Draft",
        slug="draft",
        content="Not yet",
        status="draft",
        author_id=test_user.id,
    )
    test_db.add(post)
    await test_db.commit()
    return post
