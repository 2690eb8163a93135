"""Best-effort cache layer over a fastapi-cache backend.

Cache entries are derived state: every call here is bounded by a timeout and
any backend failure is logged and reported as a miss, so callers always have
the store to fall back on.
"""
import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from redis.exceptions import RedisError

from src.config import ANALYTICS_CACHE_TTL, CACHE_TIMEOUT, LINK_CACHE_TTL

logger = logging.getLogger(__name__)

CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


def link_key(alias: str) -> str:
    return f"url:{alias}"


def link_analytics_key(link_id) -> str:
    return f"analytics:{link_id}"


def topic_analytics_key(user_id, topic: str) -> str:
    return f"topic_analytics:{user_id}:{topic}"


def overall_analytics_key(user_id) -> str:
    return f"overall_analytics:{user_id}"


class SafeCache:
    def __init__(self, backend, timeout: float = CACHE_TIMEOUT):
        self.backend = backend
        self.timeout = timeout

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await asyncio.wait_for(self.backend.get(key), self.timeout)
        except CACHE_ERRORS as exc:
            logger.warning("Cache read of %s failed, using the store: %r", key, exc)
            return None
        if isinstance(value, bytes):
            value = value.decode()
        return value

    async def set(self, key: str, value: str, ttl: int) -> bool:
        try:
            await asyncio.wait_for(self.backend.set(key, value.encode(), expire=ttl), self.timeout)
        except CACHE_ERRORS as exc:
            logger.warning("Cache write of %s failed: %r", key, exc)
            return False
        return True

    async def delete(self, *keys: str):
        for key in keys:
            try:
                await asyncio.wait_for(self.backend.clear(key=key), self.timeout)
            except KeyError:
                # in-memory backend raises for keys it never held
                pass
            except CACHE_ERRORS as exc:
                logger.warning("Cache eviction of %s failed: %r", key, exc)


class LinkCache:
    """alias -> destination URL."""

    def __init__(self, cache: SafeCache, ttl: int = LINK_CACHE_TTL):
        self.cache = cache
        self.ttl = ttl

    async def get(self, alias: str) -> Optional[str]:
        return await self.cache.get(link_key(alias))

    async def set(self, alias: str, long_url: str):
        await self.cache.set(link_key(alias), long_url, self.ttl)

    async def evict(self, *aliases: Optional[str]):
        await self.cache.delete(*(link_key(alias) for alias in aliases if alias))


class AnalyticsCache:
    def __init__(self, cache: SafeCache, ttl: int = ANALYTICS_CACHE_TTL):
        self.cache = cache
        self.ttl = ttl

    async def get(self, key: str) -> Optional[dict]:
        raw = await self.cache.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable analytics entry %s", key)
            return None

    async def set(self, key: str, payload: dict):
        await self.cache.set(key, json.dumps(payload), self.ttl)

    async def evict(self, *keys: str):
        await self.cache.delete(*keys)

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[dict]]) -> dict:
        cached = await self.get(key)
        if cached is not None:
            return cached
        # TODO: single-flight concurrent computations of the same cold key
        payload = await compute()
        await self.set(key, payload)
        return payload
