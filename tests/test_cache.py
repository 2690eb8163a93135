import asyncio
import uuid

from src.cache import (
    LinkCache,
    SafeCache,
    link_analytics_key,
    link_key,
    overall_analytics_key,
    topic_analytics_key,
)
from tests.conftest import UnavailableBackend


class SlowBackend:
    async def get(self, key):
        await asyncio.sleep(5)

    async def set(self, key, value, expire=None):
        await asyncio.sleep(5)

    async def clear(self, namespace=None, key=None):
        await asyncio.sleep(5)


def test_key_formats():
    link_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
    user_id = uuid.UUID("87654321-4321-8765-4321-876543218765")

    assert link_key("demo") == "url:demo"
    assert link_analytics_key(link_id) == "analytics:12345678-1234-5678-1234-567812345678"
    assert topic_analytics_key(user_id, "sales") == "topic_analytics:87654321-4321-8765-4321-876543218765:sales"
    assert overall_analytics_key(user_id) == "overall_analytics:87654321-4321-8765-4321-876543218765"


async def test_link_cache_round_trip(link_cache, cache_backend):
    await link_cache.set("demo", "https://example.com")

    assert await link_cache.get("demo") == "https://example.com"
    assert await cache_backend.get("url:demo") == b"https://example.com"


async def test_link_cache_evict_ignores_missing_and_empty_aliases(link_cache):
    await link_cache.set("demo", "https://example.com")

    await link_cache.evict("demo", None, "never-cached")

    assert await link_cache.get("demo") is None


async def test_unavailable_backend_degrades_to_misses():
    cache = LinkCache(SafeCache(UnavailableBackend()))

    await cache.set("demo", "https://example.com")
    await cache.evict("demo")
    assert await cache.get("demo") is None


async def test_slow_backend_is_cut_off_by_timeout():
    cache = SafeCache(SlowBackend(), timeout=0.05)

    assert await cache.get("url:demo") is None
    assert await cache.set("url:demo", "https://example.com", 60) is False


async def test_get_or_compute_populates_then_serves_cached_payload(analytics_cache):
    calls = []

    async def compute():
        calls.append(1)
        return {"totalClicks": 3}

    first = await analytics_cache.get_or_compute("analytics:abc", compute)
    second = await analytics_cache.get_or_compute("analytics:abc", compute)

    assert first == second == {"totalClicks": 3}
    assert len(calls) == 1


async def test_undecodable_analytics_entry_is_recomputed(analytics_cache, cache_backend):
    await cache_backend.set("analytics:abc", b"{not json", expire=60)

    async def compute():
        return {"totalClicks": 1}

    assert await analytics_cache.get_or_compute("analytics:abc", compute) == {"totalClicks": 1}
