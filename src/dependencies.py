from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.analytics.service import AnalyticsService
from src.cache import AnalyticsCache, LinkCache, SafeCache
from src.database import get_async_session
from src.shortener.clicks import ClickRecorder
from src.shortener.service import LinkService


def get_safe_cache(request: Request) -> SafeCache:
    return SafeCache(request.app.state.cache_backend)


def get_link_cache(cache: SafeCache = Depends(get_safe_cache)) -> LinkCache:
    return LinkCache(cache)


def get_analytics_cache(cache: SafeCache = Depends(get_safe_cache)) -> AnalyticsCache:
    return AnalyticsCache(cache)


def get_link_service(
    session: AsyncSession = Depends(get_async_session),
    link_cache: LinkCache = Depends(get_link_cache),
    analytics_cache: AnalyticsCache = Depends(get_analytics_cache),
) -> LinkService:
    return LinkService(session, link_cache, analytics_cache)


def get_analytics_service(
    session: AsyncSession = Depends(get_async_session),
    cache: AnalyticsCache = Depends(get_analytics_cache),
) -> AnalyticsService:
    return AnalyticsService(session, cache)


def get_click_recorder(request: Request) -> ClickRecorder:
    return ClickRecorder(request.app.state.session_maker, request.app.state.geo_locator)
