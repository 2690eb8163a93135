import os

from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_COMMAND_TIMEOUT = float(os.getenv("DB_COMMAND_TIMEOUT", "5"))

REDIS_URL = os.getenv("REDIS_URL", "redis://redis_app:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)

SECRET = os.getenv("SECRET", "SECRET")
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")

SHORT_CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10

LINK_CACHE_TTL = int(os.getenv("LINK_CACHE_TTL", "3600"))
ANALYTICS_CACHE_TTL = int(os.getenv("ANALYTICS_CACHE_TTL", "300"))
# seconds a single cache call may take before the store is used instead
CACHE_TIMEOUT = float(os.getenv("CACHE_TIMEOUT", "0.5"))

UNIQUE_CLICK_WINDOW_HOURS = 24
ANALYTICS_WINDOW_DAYS = 7

GEOIP_DATABASE = os.getenv("GEOIP_DATABASE")
TRUST_FORWARDED_FOR = os.getenv("TRUST_FORWARDED_FOR", "false").lower() in ("1", "true", "yes")

EXPIRY_SWEEP_SECONDS = int(os.getenv("EXPIRY_SWEEP_SECONDS", "3600"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}
