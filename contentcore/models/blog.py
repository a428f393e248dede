# contentcore/models/blog.py
# Posts + taxonomía plana (categorías y series)
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from contentcore.db.base import Base
from contentcore.db.types import UTCDateTime, utcnow
from contentcore.models.content import ContentItemMixin, RevisionMixin

post_categories = Table(
    "post_categories",
    Base.metadata,
    Column("post_id", ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ForeignKey("blog_categories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "blog_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    posts: Mapped[list["Post"]] = relationship(
        "Post", secondary=post_categories, back_populates="categories"
    )


class Series(Base):
    __tablename__ = "blog_series"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    posts: Mapped[list["Post"]] = relationship(
        "Post", back_populates="series", order_by="Post.series_order"
    )


class Post(ContentItemMixin, Base):
    __tablename__ = "posts"

    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    pin_order: Mapped[int] = mapped_column(Integer, default=0)
    allow_comments: Mapped[bool] = mapped_column(Boolean, default=True)

    series_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("blog_series.id", ondelete="SET NULL"), nullable=True, index=True
    )
    series_order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    categories: Mapped[list["Category"]] = relationship(
        "Category", secondary=post_categories, back_populates="posts"
    )
    series: Mapped[Optional["Series"]] = relationship("Series", back_populates="posts")

    __table_args__ = (
        Index("ix_posts_status_scheduled", "status", "scheduled_for"),
    )


class PostRevision(RevisionMixin, Base):
    __tablename__ = "post_revisions"

    item_id: Mapped[int] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), index=True)

    __table_args__ = (
        Index("ix_post_revisions_item_number", "item_id", "revision_number"),
    )
