"""Rollups over the trailing analytics window.

The window is the last ANALYTICS_WINDOW_DAYS UTC calendar days, today
included. Totals come from the counters kept on the link rows; the day series
and the OS/device breakdowns are computed from click events inside the window.
"""
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from src.clock import as_utc, utcnow
from src.config import ANALYTICS_WINDOW_DAYS, BASE_URL
from src.shortener.repository import ClickRepository, LinkRepository
from src.shortener.service import short_url


def window_days(now: datetime, days: int = ANALYTICS_WINDOW_DAYS) -> list[date]:
    today = as_utc(now).date()
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class AnalyticsAggregator:
    def __init__(self, session: AsyncSession, base_url: str = BASE_URL):
        self.links = LinkRepository(session)
        self.clicks = ClickRepository(session)
        self.base_url = base_url

    async def for_link(self, link: Row, now: Optional[datetime] = None) -> dict:
        return {
            "totalClicks": link.click_count,
            "uniqueUsers": link.unique_clicks,
            **await self._window_stats([link.id], now or utcnow(), breakdowns=True),
        }

    async def for_topic(self, user_id, topic: str, now: Optional[datetime] = None) -> dict:
        links, _ = await self.links.list_for_owner(user_id, topic=topic)
        stats = await self._window_stats([link.id for link in links], now or utcnow(), breakdowns=False)
        return {
            **self._totals(links),
            **stats,
            "urls": [
                {
                    "shortUrl": short_url(link, self.base_url),
                    "totalClicks": link.click_count,
                    "uniqueUsers": link.unique_clicks,
                }
                for link in links
            ],
        }

    async def for_owner(self, user_id, now: Optional[datetime] = None) -> dict:
        links, total = await self.links.list_for_owner(user_id)
        return {
            "totalUrls": total,
            **self._totals(links),
            **await self._window_stats([link.id for link in links], now or utcnow(), breakdowns=True),
        }

    @staticmethod
    def _totals(links: Sequence[Row]) -> dict:
        return {
            "totalClicks": sum(link.click_count for link in links),
            "uniqueUsers": sum(link.unique_clicks for link in links),
        }

    async def _window_stats(self, link_ids, now: datetime, breakdowns: bool) -> dict:
        days = window_days(now)
        start, end = _day_start(days[0]), _day_start(days[-1] + timedelta(days=1))

        per_day = Counter()
        if link_ids:
            for row in await self.clicks.counts_per_day(link_ids, start, end):
                per_day[row.day] += row.clicks

        stats = {
            "clicksByDate": [{"date": day.isoformat(), "clicks": per_day[day]} for day in days],
        }
        if breakdowns:
            stats["osType"] = [
                {"osName": row.name, "uniqueClicks": row.clicks, "uniqueUsers": row.users}
                for row in await self._breakdown(link_ids, start, end, "os_name")
            ]
            stats["deviceType"] = [
                {"deviceName": row.name, "uniqueClicks": row.clicks, "uniqueUsers": row.users}
                for row in await self._breakdown(link_ids, start, end, "device_type")
            ]
        return stats

    async def _breakdown(self, link_ids, start, end, column_name):
        if not link_ids:
            return []
        return await self.clicks.breakdown(link_ids, start, end, column_name)
