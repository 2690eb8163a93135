from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config import DATABASE_URL, DB_COMMAND_TIMEOUT


class Base(DeclarativeBase):
    pass


def build_engine(url: str = DATABASE_URL):
    if url.startswith("postgresql+asyncpg"):
        return create_async_engine(
            url,
            pool_pre_ping=True,
            pool_timeout=DB_COMMAND_TIMEOUT,
            connect_args={
                "command_timeout": DB_COMMAND_TIMEOUT,
                "server_settings": {"timezone": "UTC"},
            },
        )
    return create_async_engine(url)


def build_session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_db_and_tables(engine):
    # registers the tables on Base.metadata
    import src.auth.db  # noqa: F401
    import src.shortener.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_maker() as session:
        yield session
