# contentcore/services/blog_service.py
# Blog: posts planos + categorías, series, destacados/fijados y feed
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from contentcore.core.errors import ContentValidationError, LimitExceededError, NotFoundError
from contentcore.core.runtime_config import EngineConfig
from contentcore.models.blog import Category, Post, PostRevision, Series, post_categories
from contentcore.models.content import PUBLISHED
from contentcore.schemas.blog import (
    AdjacentPost,
    AdjacentPosts,
    CategoryOut,
    FeedItem,
    PostCreate,
    PostOut,
    SeriesOut,
)
from contentcore.schemas.content import BulkResult
from contentcore.services.cache_service import CACHE_TTL
from contentcore.services.lifecycle_service import ContentEngine
from contentcore.services.sanitization import sanitize_text
from contentcore.services.slug_service import SlugAllocator
from contentcore.services.text import normalize_ids

FEATURED_MAX = 10
FEED_MAX = 50


class PostEngine(ContentEngine):
    kind = "post"
    model = Post
    revision_model = PostRevision
    out_schema = PostOut
    cache_prefix = "blog"

    title_min_length = 5
    fallback_slug = "post"

    sort_fields = ContentEngine.sort_fields + ("pin_order",)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.category_slugs = SlugAllocator(Category, fallback="category")
        self.series_slugs = SlugAllocator(Series, fallback="series")

    # ------------------------------------------------------------------
    # Hooks del engine
    # ------------------------------------------------------------------
    def _prepare_new(self, db: Session, item, data, cfg: EngineConfig, now: datetime) -> None:
        item.is_featured = bool(data.is_featured)
        item.is_pinned = bool(data.is_pinned)
        item.pin_order = data.pin_order if data.is_pinned else 0
        item.allow_comments = bool(data.allow_comments)
        if data.category_ids:
            item.categories = self._resolve_categories(db, data.category_ids, cfg)

    def _check_update(self, db: Session, item, data, fields: set[str], cfg: EngineConfig) -> dict[str, Any]:
        if "category_ids" in fields and data.category_ids is not None:
            return {"categories": self._resolve_categories(db, data.category_ids, cfg)}
        return {}

    def _apply_update_extra(
        self,
        db: Session,
        item,
        data,
        fields: set[str],
        cfg: EngineConfig,
        now: datetime,
        *,
        prepared: dict[str, Any],
        slug_changed: bool,
    ) -> list[str]:
        if "is_featured" in fields and data.is_featured is not None:
            item.is_featured = data.is_featured
        if "is_pinned" in fields and data.is_pinned is not None:
            item.is_pinned = data.is_pinned
            if not data.is_pinned:
                item.pin_order = 0
        if "pin_order" in fields and data.pin_order is not None and item.is_pinned:
            item.pin_order = data.pin_order
        if "allow_comments" in fields and data.allow_comments is not None:
            item.allow_comments = data.allow_comments
        if "categories" in prepared:
            item.categories = prepared["categories"]
        return []

    def _filter_conditions(self, filters: dict[str, Any]) -> list:
        conds = []
        category_id = filters.pop("category_id", None)
        if category_id is not None:
            conds.append(Post.categories.any(Category.id == category_id))
        series_id = filters.pop("series_id", None)
        if series_id is not None:
            conds.append(Post.series_id == series_id)
        is_featured = filters.pop("is_featured", None)
        if is_featured is not None:
            conds.append(Post.is_featured.is_(bool(is_featured)))
        is_pinned = filters.pop("is_pinned", None)
        if is_pinned is not None:
            conds.append(Post.is_pinned.is_(bool(is_pinned)))
        return conds + super()._filter_conditions(filters)

    # =========================================================================
    # CATEGORIES
    # =========================================================================
    def _load_category(self, db: Session, category_id: int) -> Category:
        cat = db.get(Category, category_id)
        if cat is None:
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND", id=category_id)
        return cat

    def _resolve_categories(self, db: Session, category_ids: Any, cfg: EngineConfig) -> list[Category]:
        ids = normalize_ids(list(category_ids or []))
        if len(ids) > cfg.max_categories_per_item:
            raise LimitExceededError(
                f"Maximum {cfg.max_categories_per_item} categories per post",
                code="CATEGORY_LIMIT",
                max_categories=cfg.max_categories_per_item,
            )
        if not ids:
            return []
        found = {c.id: c for c in db.scalars(select(Category).where(Category.id.in_(ids))).all()}
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND", ids=missing)
        return [found[i] for i in ids]

    def create_category(self, db: Session, data) -> Category:
        name = sanitize_text(data.name)
        if not name:
            raise ContentValidationError("Category name is required", code="NAME_REQUIRED")
        cat = Category(
            name=name,
            slug=self.category_slugs.allocate(db, name),
            description=sanitize_text(data.description) or None,
            created_at=self._now(),
        )
        self.category_slugs.insert(db, cat)
        self.log.info("Category created: #%s %r", cat.id, cat.name)
        self._invalidate(db)
        return cat

    def update_category(self, db: Session, category_id: int, data) -> Category:
        cat = self._load_category(db, category_id)
        fields = data.model_fields_set
        if "name" in fields and data.name is not None:
            name = sanitize_text(data.name)
            if not name:
                raise ContentValidationError("Category name is required", code="NAME_REQUIRED")
            if name != cat.name:
                cat.name = name
                slug = self.category_slugs.allocate(db, name, exclude_id=cat.id)
                if slug != cat.slug:
                    self.category_slugs.assign(db, cat, slug)
        if "description" in fields:
            cat.description = sanitize_text(data.description) or None
        db.flush()
        self.log.info("Category updated: #%s %r", cat.id, cat.name)
        # Los posts cacheados embeben el nombre de la categoría
        self.invalidation.flush_namespace()
        return cat

    def delete_category(self, db: Session, category_id: int) -> None:
        cat = self._load_category(db, category_id)
        db.delete(cat)
        db.flush()
        self.log.info("Category deleted: #%s", category_id)
        self.invalidation.flush_namespace()

    def categories(self, db: Session) -> list[CategoryOut]:
        key = self.keys.aggregate("categories")
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        rows = db.execute(
            select(Category, func.count(Post.id))
            .outerjoin(post_categories, post_categories.c.category_id == Category.id)
            .outerjoin(Post, and_(Post.id == post_categories.c.post_id, Post.deleted_at.is_(None)))
            .group_by(Category.id)
            .order_by(Category.name.asc(), Category.id.asc())
        ).all()
        out = [
            CategoryOut(id=c.id, name=c.name, slug=c.slug, description=c.description, post_count=int(n))
            for c, n in rows
        ]
        self._cache_set(key, out, CACHE_TTL["categories"])
        return out

    def set_categories(self, db: Session, post_id: int, category_ids: Any, *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        post = self._load(db, post_id)
        self._assert_writable(post, actor_id, cfg)
        post.categories = self._resolve_categories(db, category_ids, cfg)
        post.updated_at = now
        db.flush()
        self._invalidate(db, ids=[post.id], slugs=[post.slug], paths=[self.path_for(post, cfg)])
        return post

    # =========================================================================
    # SERIES
    # =========================================================================
    def _load_series(self, db: Session, series_id: int) -> Series:
        series = db.get(Series, series_id)
        if series is None:
            raise NotFoundError("Series not found", code="SERIES_NOT_FOUND", id=series_id)
        return series

    def _series_out(self, db: Session, series: Series) -> SeriesOut:
        post_ids = db.scalars(
            select(Post.id)
            .where(Post.series_id == series.id, Post.deleted_at.is_(None))
            .order_by(Post.series_order.asc(), Post.id.asc())
        ).all()
        return SeriesOut(
            id=series.id,
            title=series.title,
            slug=series.slug,
            description=series.description,
            created_at=series.created_at,
            post_ids=list(post_ids),
        )

    def create_series(self, db: Session, data) -> Series:
        title = sanitize_text(data.title)
        if len(title) < 2:
            raise ContentValidationError("Series title is too short", code="TITLE_TOO_SHORT", min_length=2)
        series = Series(
            title=title,
            slug=self.series_slugs.allocate(db, title),
            description=sanitize_text(data.description) or None,
            created_at=self._now(),
        )
        self.series_slugs.insert(db, series)
        self.log.info("Series created: #%s %r", series.id, series.title)
        return series

    def get_series(self, db: Session, series_id: int) -> SeriesOut:
        return self._series_out(db, self._load_series(db, series_id))

    def list_series(self, db: Session) -> list[SeriesOut]:
        rows = db.scalars(select(Series).order_by(Series.title.asc(), Series.id.asc())).all()
        return [self._series_out(db, s) for s in rows]

    def update_series(self, db: Session, series_id: int, data) -> Series:
        series = self._load_series(db, series_id)
        fields = data.model_fields_set
        if "title" in fields and data.title is not None:
            title = sanitize_text(data.title)
            if len(title) < 2:
                raise ContentValidationError("Series title is too short", code="TITLE_TOO_SHORT", min_length=2)
            if title != series.title:
                series.title = title
                slug = self.series_slugs.allocate(db, title, exclude_id=series.id)
                if slug != series.slug:
                    self.series_slugs.assign(db, series, slug)
        if "description" in fields:
            series.description = sanitize_text(data.description) or None
        db.flush()
        self.log.info("Series updated: #%s %r", series.id, series.title)
        return series

    def delete_series(self, db: Session, series_id: int) -> None:
        """Members stay as standalone posts."""
        series = self._load_series(db, series_id)
        members = db.scalars(select(Post).where(Post.series_id == series.id)).all()
        for post in members:
            post.series = None
            post.series_order = None
        db.delete(series)
        db.flush()
        self.log.info("Series deleted: #%s (%d post(s) detached)", series_id, len(members))
        if members:
            cfg = self._cfg()
            self._invalidate(
                db,
                ids=[p.id for p in members],
                slugs=[p.slug for p in members],
                paths=[self.path_for(p, cfg) for p in members],
            )

    def add_post_to_series(
        self,
        db: Session,
        series_id: int,
        post_id: int,
        *,
        order: Optional[int] = None,
        actor_id: Optional[int],
    ):
        """Without an explicit order the post goes last."""
        cfg, now = self._cfg(), self._now()
        series = self._load_series(db, series_id)
        post = self._load(db, post_id)
        self._assert_writable(post, actor_id, cfg)
        if order is None:
            order = int(
                db.scalar(
                    select(func.count())
                    .select_from(Post)
                    .where(Post.series_id == series.id, Post.id != post.id)
                )
                or 0
            )
        post.series_id = series.id
        post.series_order = order
        post.updated_at = now
        db.flush()
        self._invalidate(db, ids=[post.id], slugs=[post.slug], paths=[self.path_for(post, cfg)])
        return post

    def remove_post_from_series(self, db: Session, post_id: int, *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        post = self._load(db, post_id)
        if post.series_id is None:
            return post
        self._assert_writable(post, actor_id, cfg)
        post.series_id = None
        post.series_order = None
        post.updated_at = now
        db.flush()
        self._invalidate(db, ids=[post.id], slugs=[post.slug], paths=[self.path_for(post, cfg)])
        return post

    def reorder_series(self, db: Session, series_id: int, post_ids: Any) -> SeriesOut:
        """List position becomes series_order."""
        series = self._load_series(db, series_id)
        ids = normalize_ids(post_ids)
        if not ids:
            raise ContentValidationError("No valid IDs provided", code="EMPTY_IDS")
        posts = {p.id: p for p in db.scalars(select(Post).where(Post.id.in_(ids))).all()}
        outside = [i for i in ids if i not in posts or posts[i].series_id != series.id]
        if outside:
            raise ContentValidationError("Posts do not belong to this series", code="NOT_IN_SERIES", ids=outside)
        for position, post_id in enumerate(ids):
            posts[post_id].series_order = position
        db.flush()
        self.log.info("Reordered %d post(s) in series %r", len(ids), series.title)
        self._invalidate(db, ids=ids)
        return self._series_out(db, series)

    # =========================================================================
    # FEATURED / PINNED / FEED
    # =========================================================================
    def set_featured(self, db: Session, post_id: int, featured: bool = True, *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        post = self._load(db, post_id)
        self._assert_writable(post, actor_id, cfg)
        post.is_featured = featured
        post.updated_at = now
        db.flush()
        self._invalidate(db, ids=[post.id], slugs=[post.slug], paths=[self.path_for(post, cfg)])
        return post

    def set_pinned(
        self,
        db: Session,
        post_id: int,
        pinned: bool = True,
        *,
        pin_order: int = 0,
        actor_id: Optional[int],
    ):
        cfg, now = self._cfg(), self._now()
        post = self._load(db, post_id)
        self._assert_writable(post, actor_id, cfg)
        post.is_pinned = pinned
        post.pin_order = pin_order if pinned else 0
        post.updated_at = now
        db.flush()
        self._invalidate(db, ids=[post.id], slugs=[post.slug], paths=[self.path_for(post, cfg)])
        return post

    def reorder_pinned(self, db: Session, post_ids: Any, *, actor_id: Optional[int]) -> list[PostOut]:
        cfg = self._cfg()
        ids = normalize_ids(post_ids)
        if not ids:
            raise ContentValidationError("No valid IDs provided", code="EMPTY_IDS")
        for position, post_id in enumerate(ids):
            post = self._load(db, post_id)
            self._assert_writable(post, actor_id, cfg)
            post.is_pinned = True
            post.pin_order = position
        db.flush()
        self.log.info("Reordered %d pinned post(s)", len(ids))
        self._invalidate(db, ids=ids)
        return self.pinned(db)

    def _published_live(self):
        return (Post.status == PUBLISHED, Post.deleted_at.is_(None))

    def featured(self, db: Session, limit: int = FEATURED_MAX) -> list[PostOut]:
        key = self.keys.aggregate("featured")
        cached = self._cache_get(key)
        if cached is None:
            rows = db.scalars(
                select(Post)
                .where(Post.is_featured.is_(True), *self._published_live())
                .order_by(Post.published_at.desc(), Post.id.desc())
                .limit(FEATURED_MAX)
            ).all()
            cached = [self._to_out(r) for r in rows]
            self._cache_set(key, cached, CACHE_TTL["featured"])
        return cached[: max(0, min(limit, FEATURED_MAX))]

    def pinned(self, db: Session) -> list[PostOut]:
        key = self.keys.aggregate("pinned")
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        rows = db.scalars(
            select(Post)
            .where(Post.is_pinned.is_(True), *self._published_live())
            .order_by(Post.pin_order.asc(), Post.id.asc())
        ).all()
        out = [self._to_out(r) for r in rows]
        self._cache_set(key, out, CACHE_TTL["pinned"])
        return out

    def feed(self, db: Session, limit: int = 20) -> list[FeedItem]:
        """Latest published posts, newest first."""
        key = self.keys.aggregate("feed")
        cached = self._cache_get(key)
        if cached is None:
            cfg = self._cfg()
            rows = db.scalars(
                select(Post)
                .where(*self._published_live())
                .order_by(Post.published_at.desc(), Post.id.desc())
                .limit(FEED_MAX)
            ).all()
            cached = [
                FeedItem(
                    id=r.id,
                    title=r.title,
                    slug=r.slug,
                    path=self.path_for(r, cfg),
                    excerpt=r.excerpt,
                    author_id=r.author_id,
                    published_at=r.published_at,
                )
                for r in rows
            ]
            self._cache_set(key, cached, CACHE_TTL["feed"])
        return cached[: max(0, min(limit, FEED_MAX))]

    # =========================================================================
    # NAVEGACIÓN / CLONADO
    # =========================================================================
    def adjacent(self, db: Session, post_id: int) -> AdjacentPosts:
        """Previous/next published post by publication date. Empty for unpublished posts."""
        key = self.keys.adjacent(post_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        cfg = self._cfg()
        post = self._load(db, post_id)
        result = AdjacentPosts()
        if post.status == PUBLISHED and post.published_at is not None:
            previous = db.scalar(
                select(Post)
                .where(*self._published_live(), Post.published_at < post.published_at)
                .order_by(Post.published_at.desc(), Post.id.desc())
                .limit(1)
            )
            following = db.scalar(
                select(Post)
                .where(*self._published_live(), Post.published_at > post.published_at)
                .order_by(Post.published_at.asc(), Post.id.asc())
                .limit(1)
            )
            result = AdjacentPosts(
                previous=self._adjacent_ref(previous, cfg),
                next=self._adjacent_ref(following, cfg),
            )
        self._cache_set(key, result, CACHE_TTL["adjacent"])
        return result

    def _adjacent_ref(self, post: Optional[Post], cfg: EngineConfig) -> Optional[AdjacentPost]:
        if post is None:
            return None
        return AdjacentPost(
            id=post.id, title=post.title, slug=post.slug, path=self.path_for(post, cfg), published_at=post.published_at
        )

    def clone_post(self, db: Session, post_id: int, *, author_id: int) -> Post:
        """
        New draft copying text, metadata, categories and password of `post_id`.
        Title gets a " (Copy)" suffix and a fresh slug; flags, pinning and series
        membership are not copied.
        """
        source = self._load(db, post_id)
        suffix = " (Copy)"
        data = PostCreate(
            title=f"{source.title[: self.title_max_length - len(suffix)]}{suffix}",
            content=source.content,
            excerpt=source.excerpt,
            meta_title=source.meta_title,
            meta_description=source.meta_description,
            structured_data=source.structured_data,
            allow_comments=source.allow_comments,
            category_ids=[c.id for c in source.categories],
        )
        clone = self.create(db, data, author_id=author_id)
        if source.password_hash:
            clone.password_hash = source.password_hash
            db.flush()
        self.log.info("Post cloned: #%s → #%s %r", source.id, clone.id, clone.slug)
        return clone

    # =========================================================================
    # BULK (propios del blog)
    # =========================================================================
    def bulk_feature(
        self, db: Session, ids: Any, featured: bool = True, *, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)

        def op(item_id: int):
            post = self._load(db, item_id)
            self._assert_writable(post, actor_id, cfg)
            post.is_featured = featured
            post.updated_at = now
            db.flush()
            return [post.slug], [self.path_for(post, cfg)]

        return self._run_bulk(db, item_ids, op, label=f"featured={featured}")

    def bulk_set_categories(
        self, db: Session, ids: Any, category_ids: Any, *, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)
        cat_ids = [c.id for c in self._resolve_categories(db, category_ids, cfg)]

        def op(item_id: int):
            post = self._load(db, item_id)
            self._assert_writable(post, actor_id, cfg)
            post.categories = list(db.scalars(select(Category).where(Category.id.in_(cat_ids))).all())
            post.updated_at = now
            db.flush()
            return [post.slug], [self.path_for(post, cfg)]

        return self._run_bulk(db, item_ids, op, label="set categories")
