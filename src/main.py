import logging.config
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi_cache import FastAPICache
from fastapi_cache.backends.redis import RedisBackend
from redis import asyncio as aioredis

import uvicorn

from src.analytics.router import router as analytics_router
from src.auth.schemas import UserCreate, UserRead
from src.auth.users import auth_backend, fastapi_users
from src.config import CACHE_TIMEOUT, GEOIP_DATABASE, LOGGING, REDIS_URL
from src.database import build_engine, build_session_maker, create_db_and_tables
from src.exceptions import register_exception_handlers
from src.shortener.enrichment import GeoLocator
from src.shortener.redirect import router as redirect_router
from src.shortener.router import router as shortener_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.config.dictConfig(LOGGING)

    engine = build_engine()
    await create_db_and_tables(engine)
    redis = aioredis.from_url(
        REDIS_URL,
        socket_timeout=CACHE_TIMEOUT,
        socket_connect_timeout=CACHE_TIMEOUT,
    )
    FastAPICache.init(RedisBackend(redis), prefix="fastapi-cache")

    app.state.session_maker = build_session_maker(engine)
    app.state.cache_backend = FastAPICache.get_backend()
    app.state.geo_locator = GeoLocator.from_path(GEOIP_DATABASE)
    logger.info("Shortener started")
    yield

    app.state.geo_locator.close()
    await redis.aclose()
    await engine.dispose()


VERSION = "1.1.0"
app = FastAPI(lifespan=lifespan, title="Shortener API", version=VERSION)
register_exception_handlers(app)

app.include_router(
    fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
)
app.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"],
)

app.include_router(shortener_router)
app.include_router(analytics_router)


@app.get("/health")
def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


# catch-all /{alias}, must stay last
app.include_router(redirect_router)

if __name__ == "__main__":
    uvicorn.run("src.main:app", reload=True, host="localhost", log_level="info")
