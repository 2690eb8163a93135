from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.exceptions import ValidationError

ALIAS_PATTERN = r"^[A-Za-z0-9_-]+$"
MIN_ALIAS_LENGTH = 3
MAX_ALIAS_LENGTH = 50
MAX_TOPIC_LENGTH = 50

# path segments served by the app itself, never resolvable as aliases
RESERVED_ALIASES = {"api", "auth", "docs", "redoc", "health"}

http_url_adapter = TypeAdapter(HttpUrl)


def validate_long_url(value: str) -> str:
    """Accept absolute http(s) URLs with a host.

    HttpUrl would normalize the value, so it is only used as a check and the
    original string is returned.
    """
    if not isinstance(value, str) or value != value.strip():
        raise ValidationError("Please provide a valid URL with http:// or https://")
    if any(ch.isspace() for ch in value):
        raise ValidationError("URL must not contain whitespace")
    try:
        http_url_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValidationError("Please provide a valid URL with http:// or https://")
    return value


def check_alias_not_reserved(value: str) -> str:
    if value.lower() in RESERVED_ALIASES:
        raise ValidationError(f"Custom alias '{value}' is reserved")
    return value
