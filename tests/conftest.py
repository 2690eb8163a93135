import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
from fastapi_cache.backends.inmemory import InMemoryBackend
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from src.auth.users import current_user
from src.cache import AnalyticsCache, LinkCache, SafeCache
from src.database import build_engine, build_session_maker, create_db_and_tables
from src.main import app
from src.shortener.enrichment import GeoLocator
from src.shortener.repository import LinkRepository
from src.shortener.schemas import LinkCreate
from src.shortener.service import LinkService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeUser:
    id: uuid.UUID
    email: str = "owner@example.com"
    is_active: bool = True


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'shortener.db'}")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def cache_backend():
    backend = InMemoryBackend()
    # the in-memory store is shared at class level
    backend._store.clear()
    return backend


@pytest.fixture
def safe_cache(cache_backend):
    return SafeCache(cache_backend)


@pytest.fixture
def link_cache(safe_cache):
    return LinkCache(safe_cache)


@pytest.fixture
def analytics_cache(safe_cache):
    return AnalyticsCache(safe_cache)


@pytest.fixture
def link_service(session, link_cache, analytics_cache):
    return LinkService(session, link_cache, analytics_cache)


@pytest.fixture
def owner():
    return FakeUser(id=uuid.uuid4())


@pytest.fixture
def make_link(link_service, owner):
    async def _make_link(long_url="https://example.com", user_id=None, now=NOW, **fields):
        data = LinkCreate(long_url=long_url, **fields)
        return await link_service.create_link(user_id or owner.id, data, now=now)

    return _make_link


@pytest.fixture
def fetch_link(session_maker):
    async def _fetch_link(link_id):
        async with session_maker() as session:
            return await LinkRepository(session).get(link_id)

    return _fetch_link


@pytest.fixture
async def client(session_maker, cache_backend, owner):
    app.state.session_maker = session_maker
    app.state.cache_backend = cache_backend
    app.state.geo_locator = GeoLocator()
    app.dependency_overrides[current_user] = lambda: owner
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class UnavailableBackend:
    """Cache backend whose server is down."""

    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value, expire=None):
        raise RedisConnectionError("connection refused")

    async def clear(self, namespace=None, key=None):
        raise RedisConnectionError("connection refused")
