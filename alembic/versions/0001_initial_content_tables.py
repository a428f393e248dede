"""initial content tables (pages, blog)

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUSES = ("draft", "published", "scheduled", "archived")
JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _content_columns() -> list:
    """Columnas compartidas por pages y posts (ver ContentItemMixin)."""
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.String(500), nullable=True),
        sa.Column("status", sa.String(9), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("word_count", sa.Integer(), nullable=False),
        sa.Column("reading_time", sa.Integer(), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("locked_by", sa.Integer(), nullable=True),
        sa.Column("locked_at", sa.DateTime(), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("scheduled_for", sa.DateTime(), nullable=True),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("meta_title", sa.String(200), nullable=True),
        sa.Column("meta_description", sa.String(500), nullable=True),
        sa.Column("structured_data", JSONType, nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _revision_columns() -> list:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.String(500), nullable=True),
        sa.Column("revision_number", sa.Integer(), nullable=False),
        sa.Column("change_note", sa.String(500), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _status_check(table: str) -> sa.CheckConstraint:
    allowed = ", ".join(f"'{s}'" for s in STATUSES)
    return sa.CheckConstraint(f"status IN ({allowed})", name=f"ck_{table}_content_status")


def _content_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_slug", table, ["slug"], unique=True)
    op.create_index(f"ix_{table}_status", table, ["status"])
    op.create_index(f"ix_{table}_author_id", table, ["author_id"])
    op.create_index(f"ix_{table}_scheduled_for", table, ["scheduled_for"])
    op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])
    op.create_index(f"ix_{table}_status_scheduled", table, ["status", "scheduled_for"])


def upgrade() -> None:
    # ---------------- pages ----------------
    op.create_table(
        "pages",
        *_content_columns(),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("depth", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("path", sa.String(1024), nullable=False, server_default="/"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("template", sa.String(64), nullable=False, server_default="default"),
        sa.Column("visibility", sa.String(32), nullable=False, server_default="public"),
        sa.Column("system_key", sa.String(64), nullable=True),
        sa.Column("is_home_page", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("custom_css", sa.Text(), nullable=True),
        sa.Column("custom_head", sa.Text(), nullable=True),
        sa.Column("custom_js", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["pages.id"], name="fk_pages_parent_id_pages", ondelete="SET NULL"
        ),
        sa.UniqueConstraint("system_key", name="uq_pages_system_key"),
        _status_check("pages"),
    )
    _content_indexes("pages")
    op.create_index("ix_pages_parent_id", "pages", ["parent_id"])
    op.create_index("ix_pages_parent_sort", "pages", ["parent_id", "sort_order"])

    op.create_table(
        "page_revisions",
        *_revision_columns(),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("template", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(
            ["item_id"], ["pages.id"], name="fk_page_revisions_item_id_pages", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_page_revisions_item_id", "page_revisions", ["item_id"])
    op.create_index("ix_page_revisions_item_number", "page_revisions", ["item_id", "revision_number"])

    # ---------------- blog ----------------
    op.create_table(
        "blog_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_blog_categories_slug", "blog_categories", ["slug"], unique=True)

    op.create_table(
        "blog_series",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_blog_series_slug", "blog_series", ["slug"], unique=True)

    op.create_table(
        "posts",
        *_content_columns(),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pin_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("allow_comments", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("series_id", sa.Integer(), nullable=True),
        sa.Column("series_order", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["series_id"], ["blog_series.id"], name="fk_posts_series_id_blog_series", ondelete="SET NULL"
        ),
        _status_check("posts"),
    )
    _content_indexes("posts")
    op.create_index("ix_posts_is_featured", "posts", ["is_featured"])
    op.create_index("ix_posts_is_pinned", "posts", ["is_pinned"])
    op.create_index("ix_posts_series_id", "posts", ["series_id"])

    op.create_table(
        "post_revisions",
        *_revision_columns(),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["item_id"], ["posts.id"], name="fk_post_revisions_item_id_posts", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_post_revisions_item_id", "post_revisions", ["item_id"])
    op.create_index("ix_post_revisions_item_number", "post_revisions", ["item_id", "revision_number"])

    op.create_table(
        "post_categories",
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["post_id"], ["posts.id"], name="fk_post_categories_post_id_posts", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["category_id"], ["blog_categories.id"],
            name="fk_post_categories_category_id_blog_categories", ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("post_id", "category_id", name="pk_post_categories"),
    )


def downgrade() -> None:
    op.drop_table("post_categories")
    op.drop_table("post_revisions")
    op.drop_table("posts")
    op.drop_table("blog_series")
    op.drop_table("blog_categories")
    op.drop_table("page_revisions")
    op.drop_table("pages")
