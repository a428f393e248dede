# contentcore/models/pages.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from contentcore.db.base import Base
from contentcore.models.content import ContentItemMixin, RevisionMixin


class Page(ContentItemMixin, Base):
    __tablename__ = "pages"

    # Jerarquía: parent_id NULL ⇒ raíz (depth 0)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("pages.id", ondelete="SET NULL"), nullable=True, index=True
    )
    depth: Mapped[int] = mapped_column(Integer, default=0)
    path: Mapped[str] = mapped_column(String(1024), default="/")
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    template: Mapped[str] = mapped_column(String(64), default="default")
    visibility: Mapped[str] = mapped_column(String(32), default="public")

    system_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
    is_home_page: Mapped[bool] = mapped_column(Boolean, default=False)

    # Solo se guardan si allow_code_injection está activo
    custom_css: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_head: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_js: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_pages_parent_sort", "parent_id", "sort_order"),
        Index("ix_pages_status_scheduled", "status", "scheduled_for"),
    )


class PageRevision(RevisionMixin, Base):
    __tablename__ = "page_revisions"

    item_id: Mapped[int] = mapped_column(ForeignKey("pages.id", ondelete="CASCADE"), index=True)
    template: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_page_revisions_item_number", "item_id", "revision_number"),
    )
