# contentcore/models/content.py
# Columnas compartidas por Page y Post (items versionados, bloqueables, programables)
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Enum, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from contentcore.db.types import UTCDateTime, utcnow

DRAFT = "draft"
PUBLISHED = "published"
SCHEDULED = "scheduled"
ARCHIVED = "archived"
STATUSES = (DRAFT, PUBLISHED, SCHEDULED, ARCHIVED)

ContentStatus = Enum(
    *STATUSES,
    name="content_status",
    create_constraint=True,
    validate_strings=True,
    native_enum=False,
)

# JSONB en Postgres, JSON plano en SQLite (tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class ContentItemMixin:
    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    content: Mapped[str] = mapped_column(Text, default="")
    excerpt: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(ContentStatus, default=DRAFT, index=True)
    author_id: Mapped[int] = mapped_column(Integer, index=True)

    word_count: Mapped[int] = mapped_column(Integer, default=0)
    reading_time: Mapped[int] = mapped_column(Integer, default=1)  # minutos
    revision: Mapped[int] = mapped_column(Integer, default=1)

    # Lock embebido: is_locked=False ⇒ locked_by/locked_at en NULL
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    locked_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    locked_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    published_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, index=True)

    is_system: Mapped[bool] = mapped_column(Boolean, default=False)

    meta_title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    meta_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    structured_data: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password_hash)


class RevisionMixin:
    """Immutable snapshot of an item's text fields. `item_id` lives on each concrete table."""

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text, default="")
    excerpt: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    revision_number: Mapped[int] = mapped_column(Integer)
    change_note: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
