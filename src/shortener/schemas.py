import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.shortener.validators import (
    ALIAS_PATTERN,
    MAX_ALIAS_LENGTH,
    MAX_TOPIC_LENGTH,
    MIN_ALIAS_LENGTH,
    check_alias_not_reserved,
    validate_long_url,
)


class LinkCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    long_url: str = Field(alias="longUrl")
    custom_alias: Optional[str] = Field(
        default=None,
        alias="customAlias",
        pattern=ALIAS_PATTERN,
        min_length=MIN_ALIAS_LENGTH,
        max_length=MAX_ALIAS_LENGTH,
    )
    topic: Optional[str] = Field(default=None, min_length=1, max_length=MAX_TOPIC_LENGTH)
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")

    @field_validator("long_url")
    @classmethod
    def check_long_url(cls, value):
        return validate_long_url(value)

    @field_validator("custom_alias")
    @classmethod
    def check_custom_alias(cls, value):
        return check_alias_not_reserved(value) if value is not None else value


class LinkResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    short_url: str = Field(alias="shortUrl")
    long_url: str = Field(alias="longUrl")
    short_code: str = Field(alias="shortCode")
    custom_alias: Optional[str] = Field(default=None, alias="customAlias")
    topic: Optional[str] = None
    click_count: int = Field(default=0, alias="clickCount")
    unique_clicks: int = Field(default=0, alias="uniqueClicks")
    is_active: bool = Field(default=True, alias="isActive")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class LinkList(BaseModel):
    urls: List[LinkResponse]
    total: int
    limit: int
    offset: int
