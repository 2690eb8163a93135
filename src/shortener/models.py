import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    true,
)
from sqlalchemy.sql import func

from src.database import Base

metadata = Base.metadata

links = Table(
    "links",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("user_id", Uuid, nullable=False, index=True),
    Column("long_url", Text, nullable=False),
    # unique over every row, soft-deleted ones included
    Column("short_code", String(16), nullable=False, unique=True),
    Column("custom_alias", String(50), nullable=True, unique=True),
    Column("topic", String(50), nullable=True, index=True),
    Column("click_count", Integer, nullable=False, default=0, server_default="0"),
    Column("unique_clicks", Integer, nullable=False, default=0, server_default="0"),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("expires_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    CheckConstraint("unique_clicks <= click_count", name="ck_links_unique_le_total"),
)

clicks = Table(
    "clicks",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("link_id", Uuid, ForeignKey("links.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", Uuid, nullable=False, index=True),
    Column("ip_address", String(45), nullable=True),
    Column("user_agent", Text, nullable=True),
    Column("referer", Text, nullable=True),
    Column("country", String(2), nullable=True),
    Column("region", String(50), nullable=True),
    Column("city", String(50), nullable=True),
    Column("device_type", String(20), nullable=False, default="desktop"),
    Column("os_name", String(50), nullable=False, default="Unknown"),
    Column("browser_name", String(50), nullable=False, default="Unknown"),
    Column("is_unique", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Index("ix_clicks_link_ip_created", "link_id", "ip_address", "created_at"),
)
