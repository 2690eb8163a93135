import asyncio
import logging

from celery import Celery
from redis import asyncio as aioredis
from fastapi_cache.backends.redis import RedisBackend

from src.cache import LinkCache, SafeCache
from src.config import CACHE_TIMEOUT, CELERY_BROKER_URL, EXPIRY_SWEEP_SECONDS, REDIS_URL
from src.database import build_engine, build_session_maker
from src.shortener.service import LinkService

logger = logging.getLogger(__name__)

celery = Celery("shortener", broker=CELERY_BROKER_URL)
celery.conf.beat_schedule = {
    "deactivate-expired-links": {
        "task": "src.tasks.tasks.deactivate_expired_links_task",
        "schedule": EXPIRY_SWEEP_SECONDS,
    },
}


async def deactivate_expired_links(session_maker, link_cache: LinkCache) -> int:
    """Deactivates links past their expiry and drops their cached destinations."""
    async with session_maker() as session:
        return await LinkService(session, link_cache).deactivate_expired()


async def _run_sweep() -> int:
    # each task run gets its own event loop, so the clients are built per run
    engine = build_engine()
    redis = aioredis.from_url(REDIS_URL, socket_timeout=CACHE_TIMEOUT)
    try:
        link_cache = LinkCache(SafeCache(RedisBackend(redis)))
        return await deactivate_expired_links(build_session_maker(engine), link_cache)
    finally:
        await redis.aclose()
        await engine.dispose()


@celery.task
def deactivate_expired_links_task():
    """Runs on the beat schedule. Deactivates links whose expires_at has passed."""
    deactivated = asyncio.run(_run_sweep())
    logger.info("Expiry sweep deactivated %d links", deactivated)
    return deactivated
