from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.analytics.aggregator import AnalyticsAggregator
from src.cache import AnalyticsCache, link_analytics_key, overall_analytics_key, topic_analytics_key
from src.config import BASE_URL
from src.exceptions import NotFound
from src.shortener.repository import LinkRepository


class AnalyticsService:
    """Scoped rollups, memoized in the analytics cache for its TTL."""

    def __init__(self, session: AsyncSession, cache: AnalyticsCache, base_url: str = BASE_URL):
        self.links = LinkRepository(session)
        self.aggregator = AnalyticsAggregator(session, base_url=base_url)
        self.cache = cache

    async def link_analytics(self, user_id, alias: str, now: Optional[datetime] = None) -> dict:
        link = await self.links.find_owned_by_alias(alias, user_id)
        if link is None:
            raise NotFound("URL not found")
        return await self.cache.get_or_compute(
            link_analytics_key(link.id),
            lambda: self.aggregator.for_link(link, now),
        )

    async def topic_analytics(self, user_id, topic: str, now: Optional[datetime] = None) -> dict:
        return await self.cache.get_or_compute(
            topic_analytics_key(user_id, topic),
            lambda: self.aggregator.for_topic(user_id, topic, now),
        )

    async def overall_analytics(self, user_id, now: Optional[datetime] = None) -> dict:
        return await self.cache.get_or_compute(
            overall_analytics_key(user_id),
            lambda: self.aggregator.for_owner(user_id, now),
        )
