import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Request

from src.clock import utcnow
from src.config import TRUST_FORWARDED_FOR, UNIQUE_CLICK_WINDOW_HOURS
from src.shortener.enrichment import GeoLocator, parse_user_agent
from src.shortener.repository import ClickRepository, LinkRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickContext:
    ip: Optional[str]
    user_agent: str = ""
    referer: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request, trust_forwarded_for: bool = TRUST_FORWARDED_FOR) -> "ClickContext":
        ip = None
        forwarded = request.headers.get("x-forwarded-for")
        if trust_forwarded_for and forwarded:
            ip = forwarded.split(",")[0].strip() or None
        elif request.client is not None:
            ip = request.client.host
        return cls(
            ip=ip,
            user_agent=request.headers.get("user-agent", ""),
            referer=request.headers.get("referer"),
        )


class ClickClassifier:
    def __init__(self, clicks: ClickRepository, window: timedelta = timedelta(hours=UNIQUE_CLICK_WINDOW_HOURS)):
        self.clicks = clicks
        self.window = window

    async def is_unique(self, link_id, ip: Optional[str], now: datetime) -> bool:
        # without an origin there is nothing to dedupe on, so it never counts as unique
        if not ip:
            return False
        seen = await self.clicks.exists_since(link_id, ip, now - self.window, now)
        return not seen


class CounterUpdater:
    def __init__(self, links: LinkRepository):
        self.links = links

    async def record(self, link_id, unique: bool):
        await self.links.increment_counters(link_id, unique)


class ClickRecorder:
    """Writes one click event per resolved visit and bumps the link counters.

    Runs after the redirect is already decided, with its own session.
    """

    def __init__(self, session_maker, geo_locator: Optional[GeoLocator] = None, clock=utcnow):
        self.session_maker = session_maker
        self.geo_locator = geo_locator or GeoLocator()
        self.clock = clock

    async def record(self, link, context: ClickContext, now: Optional[datetime] = None) -> bool:
        now = now or self.clock()
        agent = parse_user_agent(context.user_agent)
        geo = self.geo_locator.lookup(context.ip)

        async with self.session_maker() as session:
            clicks = ClickRepository(session)
            is_unique = await ClickClassifier(clicks).is_unique(link.id, context.ip, now)
            await clicks.insert({
                "id": uuid.uuid4(),
                "link_id": link.id,
                "user_id": link.user_id,
                "ip_address": context.ip,
                "user_agent": context.user_agent,
                "referer": context.referer,
                "country": geo.country,
                "region": geo.region,
                "city": geo.city,
                "device_type": agent.device_type,
                "os_name": agent.os_name,
                "browser_name": agent.browser_name,
                "is_unique": is_unique,
                "created_at": now,
            })
            await CounterUpdater(LinkRepository(session)).record(link.id, is_unique)
            await session.commit()
        return is_unique

    async def record_safely(self, link, context: ClickContext):
        try:
            await self.record(link, context)
        except Exception:
            logger.exception("Failed to record click for link %s", link.id)
