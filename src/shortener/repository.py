import asyncio
import functools
import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import Date, distinct, func, insert, or_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import DependencyUnavailable
from src.shortener.models import clicks, links

logger = logging.getLogger(__name__)

STORE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError, asyncio.TimeoutError)


def translate_store_errors(method):
    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except STORE_ERRORS as exc:
            logger.error("Store call %s failed: %r", method.__qualname__, exc)
            raise DependencyUnavailable("Link store is unavailable") from exc

    return wrapper


def _matches_alias(alias: str):
    return or_(links.c.short_code == alias, links.c.custom_alias == alias)


class LinkRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    @translate_store_errors
    async def alias_taken(self, value: str) -> bool:
        """Checks both alias columns, soft-deleted rows included."""
        result = await self.session.execute(
            select(links.c.id).where(_matches_alias(value)).limit(1)
        )
        return result.first() is not None

    @translate_store_errors
    async def insert(self, values: dict) -> None:
        await self.session.execute(insert(links).values(values))

    @translate_store_errors
    async def get(self, link_id) -> Optional[Row]:
        result = await self.session.execute(select(links).where(links.c.id == link_id))
        return result.first()

    @translate_store_errors
    async def find_active_by_alias(self, alias: str, now: datetime) -> Optional[Row]:
        result = await self.session.execute(
            select(links).where(
                _matches_alias(alias),
                links.c.is_active.is_(True),
                links.c.deleted_at.is_(None),
                or_(links.c.expires_at.is_(None), links.c.expires_at > now),
            )
        )
        return result.first()

    @translate_store_errors
    async def find_owned_by_alias(self, alias: str, user_id) -> Optional[Row]:
        result = await self.session.execute(
            select(links).where(
                _matches_alias(alias),
                links.c.user_id == user_id,
                links.c.deleted_at.is_(None),
            )
        )
        return result.first()

    @translate_store_errors
    async def get_owned(self, link_id, user_id) -> Optional[Row]:
        result = await self.session.execute(
            select(links).where(
                links.c.id == link_id,
                links.c.user_id == user_id,
                links.c.deleted_at.is_(None),
            )
        )
        return result.first()

    @translate_store_errors
    async def list_for_owner(
        self, user_id, topic: Optional[str] = None, limit: Optional[int] = None, offset: int = 0
    ) -> tuple[Sequence[Row], int]:
        conditions = [links.c.user_id == user_id, links.c.deleted_at.is_(None)]
        if topic is not None:
            conditions.append(links.c.topic == topic)

        total = await self.session.scalar(select(func.count()).select_from(links).where(*conditions))
        query = (
            select(links)
            .where(*conditions)
            .order_by(links.c.created_at.desc(), links.c.id)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return result.fetchall(), total or 0

    @translate_store_errors
    async def increment_counters(self, link_id, unique: bool) -> None:
        """Single UPDATE so concurrent visits never lose an increment."""
        await self.session.execute(
            update(links)
            .where(links.c.id == link_id)
            .values(
                click_count=links.c.click_count + 1,
                unique_clicks=links.c.unique_clicks + (1 if unique else 0),
            )
        )

    @translate_store_errors
    async def soft_delete(self, link_id, now: datetime) -> None:
        await self.session.execute(
            update(links)
            .where(links.c.id == link_id)
            .values(deleted_at=now, is_active=False, updated_at=now)
        )

    @translate_store_errors
    async def deactivate(self, link_id, now: datetime) -> None:
        await self.session.execute(
            update(links).where(links.c.id == link_id).values(is_active=False, updated_at=now)
        )

    @translate_store_errors
    async def deactivate_expired(self, now: datetime) -> Sequence[Row]:
        condition = [
            links.c.is_active.is_(True),
            links.c.expires_at.is_not(None),
            links.c.expires_at <= now,
        ]
        result = await self.session.execute(
            select(links.c.id, links.c.short_code, links.c.custom_alias).where(*condition)
        )
        expired = result.fetchall()
        if expired:
            await self.session.execute(
                update(links)
                .where(links.c.id.in_([row.id for row in expired]))
                .values(is_active=False, updated_at=now)
            )
        return expired


class ClickRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    @translate_store_errors
    async def exists_since(self, link_id, ip_address: str, since: datetime, until: datetime) -> bool:
        result = await self.session.execute(
            select(clicks.c.id)
            .where(
                clicks.c.link_id == link_id,
                clicks.c.ip_address == ip_address,
                clicks.c.created_at >= since,
                clicks.c.created_at <= until,
            )
            .limit(1)
        )
        return result.first() is not None

    @translate_store_errors
    async def insert(self, values: dict) -> None:
        await self.session.execute(insert(clicks).values(values))

    @translate_store_errors
    async def counts_per_day(self, link_ids, start: datetime, end: datetime) -> Sequence[Row]:
        """(day, clicks) rows. Days are UTC; postgres sessions run with timezone=UTC."""
        day = func.date(clicks.c.created_at, type_=Date)
        result = await self.session.execute(
            select(day.label("day"), func.count(clicks.c.id).label("clicks"))
            .where(
                clicks.c.link_id.in_(link_ids),
                clicks.c.created_at >= start,
                clicks.c.created_at < end,
            )
            .group_by(day)
        )
        return result.fetchall()

    @translate_store_errors
    async def breakdown(self, link_ids, start: datetime, end: datetime, column_name: str) -> Sequence[Row]:
        """Event count and distinct origin IPs per value of `column_name`."""
        column = clicks.c[column_name]
        result = await self.session.execute(
            select(
                column.label("name"),
                func.count(clicks.c.id).label("clicks"),
                func.count(distinct(clicks.c.ip_address)).label("users"),
            )
            .where(
                clicks.c.link_id.in_(link_ids),
                clicks.c.created_at >= start,
                clicks.c.created_at < end,
            )
            .group_by(column)
            .order_by(func.count(clicks.c.id).desc(), column)
        )
        return result.fetchall()
