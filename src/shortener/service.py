import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cache import AnalyticsCache, LinkCache, link_analytics_key
from src.clock import as_utc, utcnow
from src.config import BASE_URL
from src.exceptions import AliasConflict, NotFound, ValidationError
from src.shortener.codegen import CodeGenerator, generate_code
from src.shortener.repository import LinkRepository
from src.shortener.schemas import LinkCreate, LinkResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLink:
    destination: str
    link: Row


def short_url(link: Row, base_url: str = BASE_URL) -> str:
    return f"{base_url}/{link.custom_alias or link.short_code}"


def to_response(link: Row, base_url: str = BASE_URL) -> LinkResponse:
    return LinkResponse(
        id=link.id,
        short_url=short_url(link, base_url),
        long_url=link.long_url,
        short_code=link.short_code,
        custom_alias=link.custom_alias,
        topic=link.topic,
        click_count=link.click_count,
        unique_clicks=link.unique_clicks,
        is_active=link.is_active,
        expires_at=as_utc(link.expires_at),
        created_at=as_utc(link.created_at),
    )


class LinkService:
    def __init__(
        self,
        session: AsyncSession,
        link_cache: LinkCache,
        analytics_cache: Optional[AnalyticsCache] = None,
        generate=generate_code,
    ):
        self.session = session
        self.links = LinkRepository(session)
        self.link_cache = link_cache
        self.analytics_cache = analytics_cache
        self.generate = generate

    async def create_link(self, user_id, data: LinkCreate, now: Optional[datetime] = None) -> Row:
        now = now or utcnow()
        expires_at = as_utc(data.expires_at)
        if expires_at is not None and expires_at <= now:
            raise ValidationError("Expiration date cannot be in the past")

        if data.custom_alias and await self.links.alias_taken(data.custom_alias):
            raise AliasConflict("Custom alias already exists")

        generator = CodeGenerator(self.links, generate=self.generate)
        link_id = uuid.uuid4()
        while True:
            code = await generator.next_code()
            try:
                await self.links.insert({
                    "id": link_id,
                    "user_id": user_id,
                    "long_url": data.long_url,
                    "short_code": code,
                    "custom_alias": data.custom_alias,
                    "topic": data.topic,
                    "click_count": 0,
                    "unique_clicks": 0,
                    "is_active": True,
                    "expires_at": expires_at,
                    "created_at": now,
                    "updated_at": now,
                })
                await self.session.commit()
                break
            except IntegrityError:
                # the unique constraints are the real guard, the pre-checks can race
                await self.session.rollback()
                if data.custom_alias and await self.links.alias_taken(data.custom_alias):
                    raise AliasConflict("Custom alias already exists")
                logger.warning("Short code %s collided on insert, retrying", code)

        link = await self.links.get(link_id)
        logger.info("Created link %s -> %s for user %s", code, data.long_url, user_id)
        await self.link_cache.set(data.custom_alias or code, data.long_url)
        return link

    async def resolve(self, alias: str, now: Optional[datetime] = None) -> ResolvedLink:
        """Cache-aside lookup.

        The store is read on a cache hit as well: the click needs the link
        record, and a hit for a link that is gone from the store is a stale
        entry that gets evicted.
        """
        now = now or utcnow()
        cached_url = await self.link_cache.get(alias)
        link = await self.links.find_active_by_alias(alias, now)

        if link is None:
            if cached_url is not None:
                logger.info("Evicting stale cache entry for %s", alias)
                await self.link_cache.evict(alias)
            raise NotFound("Short URL not found")

        if cached_url is not None:
            return ResolvedLink(destination=cached_url, link=link)

        await self.link_cache.set(alias, link.long_url)
        return ResolvedLink(destination=link.long_url, link=link)

    async def list_links(self, user_id, topic: Optional[str] = None, limit: int = 20, offset: int = 0):
        return await self.links.list_for_owner(user_id, topic=topic, limit=limit, offset=offset)

    async def _owned(self, link_id, user_id) -> Row:
        link = await self.links.get_owned(link_id, user_id)
        if link is None:
            raise NotFound("URL not found")
        return link

    async def delete_link(self, link_id, user_id, now: Optional[datetime] = None):
        link = await self._owned(link_id, user_id)
        await self.links.soft_delete(link.id, now or utcnow())
        await self.session.commit()

        await self.link_cache.evict(link.short_code, link.custom_alias)
        if self.analytics_cache is not None:
            await self.analytics_cache.evict(link_analytics_key(link.id))
        logger.info("Deleted link %s for user %s", link.short_code, user_id)

    async def deactivate_link(self, link_id, user_id, now: Optional[datetime] = None) -> Row:
        link = await self._owned(link_id, user_id)
        await self.links.deactivate(link.id, now or utcnow())
        await self.session.commit()

        await self.link_cache.evict(link.short_code, link.custom_alias)
        return await self.links.get(link.id)

    async def deactivate_expired(self, now: Optional[datetime] = None) -> int:
        expired = await self.links.deactivate_expired(now or utcnow())
        await self.session.commit()
        for link in expired:
            await self.link_cache.evict(link.short_code, link.custom_alias)
        if expired:
            logger.info("Deactivated %d expired links", len(expired))
        return len(expired)
