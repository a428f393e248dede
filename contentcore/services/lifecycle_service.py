# contentcore/services/lifecycle_service.py
# Engine genérico de ciclo de vida: CRUD, transiciones de estado, revisiones,
# locks, barrido de programados, operaciones bulk e invalidación de cache.
# Pages y Blog son subclases que sólo añaden sus columnas/reglas propias.
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contentcore.core.errors import (
    ContentError,
    ContentValidationError,
    FeatureDisabledError,
    LimitExceededError,
    NotFoundError,
    ProtectedItemError,
)
from contentcore.core.runtime_config import ConfigProvider, EngineConfig
from contentcore.db.types import utcnow
from contentcore.models.content import ARCHIVED, DRAFT, PUBLISHED, SCHEDULED, STATUSES
from contentcore.schemas.content import (
    BulkItemError,
    BulkResult,
    ContentStats,
    LockInfo,
    Paginated,
    RevisionDiff,
    ScheduledItem,
    ScheduleError,
    ScheduleProcessResult,
    SitemapEntry,
)
from contentcore.services.cache_service import CACHE_TTL, CacheInvalidationPolicy, CacheProvider, NullCache
from contentcore.services.lock_service import LockManager, lock_info
from contentcore.services.passwords import hash_password, verify_password
from contentcore.services.sanitization import sanitize_html, sanitize_text
from contentcore.services.slug_service import SlugAllocator
from contentcore.services.structured_data import validate_structured_data
from contentcore.services.text import (
    count_words,
    generate_excerpt,
    generate_slug,
    hash_list_options,
    normalize_ids,
    reading_time,
)
from contentcore.services.versioning_service import RevisionStore

# -----------------------------
# Transiciones de estado
# -----------------------------
TRANSITIONS: dict[str, frozenset[str]] = {
    DRAFT: frozenset({PUBLISHED, SCHEDULED, ARCHIVED}),
    SCHEDULED: frozenset({PUBLISHED, DRAFT, ARCHIVED}),
    PUBLISHED: frozenset({DRAFT, ARCHIVED}),
    ARCHIVED: frozenset({DRAFT}),
}

# Estados que un bulk no aplica a items de sistema
PROTECTED_BULK_STATUSES = frozenset({DRAFT, SCHEDULED, ARCHIVED})

TEXT_FIELDS = ("title", "content", "excerpt")


def can_transition(src: str, dst: str) -> bool:
    if src == dst:
        return True
    return dst in TRANSITIONS.get(src, frozenset())


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


ConfigSource = Union[ConfigProvider, EngineConfig, None]
# Una operación bulk por item devuelve (slugs, paths) afectados
BulkOp = Callable[[int], tuple[list[str], list[str]]]


class ContentEngine:
    """
    Lifecycle orchestrator for one content kind.

    Every public method takes the SQLAlchemy `Session` first, flushes but never
    commits, reads a fresh config snapshot once, and finishes by applying the
    cache invalidation policy. Read methods return (cacheable) pydantic models;
    mutations return the ORM row.
    """

    kind: str = "item"
    model: Any = None
    revision_model: Any = None
    out_schema: Any = None
    cache_prefix: str = "content"

    title_min_length: int = 2
    title_max_length: int = 200
    fallback_slug: str = "item"
    reserved_slugs: frozenset[str] = frozenset()

    sort_fields: tuple[str, ...] = ("created_at", "updated_at", "published_at", "title", "slug", "status")
    default_sort: tuple[str, str] = ("created_at", "desc")

    def __init__(
        self,
        *,
        config: ConfigSource = None,
        cache: Optional[CacheProvider] = None,
        notifier: Any = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if isinstance(config, EngineConfig):
            config = ConfigProvider(config)
        self.config: ConfigProvider = config or ConfigProvider()
        self.cache: CacheProvider = cache if cache is not None else NullCache()
        self.log = logger or logging.getLogger(f"contentcore.{self.kind}")
        self.clock = clock or utcnow

        self.slugs = SlugAllocator(self.model, reserved=self.reserved_slugs, fallback=self.fallback_slug)
        self.revision_store = RevisionStore(self.revision_model)
        self.locks = LockManager(self.model)
        self.invalidation = CacheInvalidationPolicy(self.cache_prefix, self.cache, notifier, self.log)
        self.keys = self.invalidation.keys

    # =========================================================================
    # Helpers
    # =========================================================================
    def _cfg(self) -> EngineConfig:
        return self.config.snapshot()

    def _now(self) -> datetime:
        return as_utc(self.clock())

    @property
    def label(self) -> str:
        return self.kind.capitalize()

    def _load(self, db: Session, item_id: int, *, include_deleted: bool = False):
        item = db.get(self.model, item_id)
        if item is None or (item.deleted_at is not None and not include_deleted):
            raise NotFoundError(f"{self.label} not found", id=item_id)
        return item

    def path_for(self, item, cfg: EngineConfig) -> str:
        return f"{cfg.base_path}/{item.slug}"

    def _to_out(self, item):
        return self.out_schema.model_validate(item)

    def _cache_get(self, key: str):
        try:
            return self.cache.get(key)
        except Exception as exc:  # noqa: BLE001 - cache caído = miss
            self.log.warning("Cache get failed for %s: %s", key, exc)
            return None

    def _cache_set(self, key: str, value, ttl: int) -> None:
        try:
            self.cache.set(key, value, ttl)
        except Exception as exc:  # noqa: BLE001
            self.log.warning("Cache set failed for %s: %s", key, exc)

    def _invalidate(self, db: Session, *, ids: Iterable[int] = (), slugs: Iterable[Optional[str]] = (),
                    paths: Iterable[Optional[str]] = ()) -> None:
        """Purge now; the re-render webhook waits for `db` to commit."""
        self.invalidation.invalidate(ids=ids, slugs=slugs, paths=paths, session=db)

    def _clean_title(self, raw: Optional[str]) -> str:
        title = sanitize_text(raw)
        if len(title) < self.title_min_length:
            raise ContentValidationError(
                "Title is too short", code="TITLE_TOO_SHORT", min_length=self.title_min_length
            )
        if len(title) > self.title_max_length:
            raise ContentValidationError(
                "Title is too long", code="TITLE_TOO_LONG", max_length=self.title_max_length
            )
        return title

    def _check_word_count(self, words: int, cfg: EngineConfig) -> None:
        if cfg.min_word_count and words < cfg.min_word_count:
            raise ContentValidationError(
                f"Content must have at least {cfg.min_word_count} words",
                code="CONTENT_TOO_SHORT",
                word_count=words,
                min_word_count=cfg.min_word_count,
            )

    def _assert_writable(self, item, actor_id: Optional[int], cfg: EngineConfig) -> None:
        if cfg.enable_locking:
            self.locks.assert_can_write(item, actor_id, timeout_minutes=cfg.lock_timeout_minutes)

    def _assert_not_protected(self, item, action: str) -> None:
        if item.is_system:
            raise ProtectedItemError(f"System {self.kind}s cannot be {action}", id=item.id)

    def _validate_schedule(self, when: Optional[datetime], cfg: EngineConfig, now: datetime) -> datetime:
        if not cfg.enable_scheduling:
            raise FeatureDisabledError("Scheduling is disabled", code="SCHEDULING_DISABLED")
        if when is None:
            raise ContentValidationError("A scheduled date is required", code="SCHEDULE_REQUIRED")
        when = as_utc(when)
        if when <= now:
            raise ContentValidationError(
                "Scheduled date must be in the future", code="SCHEDULE_PAST", scheduled_for=when.isoformat()
            )
        return when

    def _password_hash(self, plain: Optional[str], cfg: EngineConfig) -> Optional[str]:
        if not plain:
            return None
        if not cfg.enable_password_protection:
            raise FeatureDisabledError("Password protection is disabled", code="PASSWORD_PROTECTION_DISABLED")
        return hash_password(plain)

    def _apply_status(
        self,
        item,
        dst: str,
        *,
        cfg: EngineConfig,
        now: datetime,
        scheduled_for: Optional[datetime] = None,
    ) -> bool:
        """Returns True when the row changed. Same state is a no-op (except a reschedule)."""
        plan = self._check_status(item, dst, cfg=cfg, now=now, scheduled_for=scheduled_for)
        if plan is None:
            return False
        self._write_status(item, *plan, now=now)
        return True

    def _check_status(
        self,
        item,
        dst: str,
        *,
        cfg: EngineConfig,
        now: datetime,
        scheduled_for: Optional[datetime] = None,
    ) -> Optional[tuple[str, Optional[datetime]]]:
        """Validate item.status → dst without touching the row. None means nothing to do."""
        src = item.status
        if dst not in STATUSES:
            raise ContentValidationError(f"Unknown status '{dst}'", code="INVALID_STATUS")
        if dst == SCHEDULED and src == SCHEDULED and scheduled_for is None:
            return None
        if dst != SCHEDULED and src == dst:
            return None
        if not can_transition(src, dst):
            raise ContentValidationError(
                f"Invalid transition {src} → {dst}", code="INVALID_TRANSITION", **{"from": src, "to": dst}
            )
        if dst == SCHEDULED:
            return dst, self._validate_schedule(scheduled_for, cfg, now)
        return dst, None

    def _write_status(self, item, dst: str, when: Optional[datetime], *, now: datetime) -> None:
        if dst == SCHEDULED:
            item.scheduled_for = when
            item.status = SCHEDULED
            return

        item.status = dst
        item.scheduled_for = None
        if dst == PUBLISHED:
            if item.published_at is None:
                item.published_at = now
            item.archived_at = None
        elif dst == ARCHIVED:
            item.archived_at = now

    # =========================================================================
    # Hooks por tipo de contenido
    # =========================================================================
    def _prepare_new(self, db: Session, item, data, cfg: EngineConfig, now: datetime) -> None:
        """Kind-specific columns before the INSERT."""

    def _after_create(self, db: Session, item, data, cfg: EngineConfig, now: datetime) -> None:
        """Kind-specific work once the row has an id."""

    def _check_update(self, db: Session, item, data, fields: set[str], cfg: EngineConfig) -> dict[str, Any]:
        """
        Kind-specific guards, run before the row or its revisions change.
        Returns values already resolved for `_apply_update_extra`.
        """
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
        """Kind-specific update fields. Returns extra paths to revalidate."""
        return []

    def _before_hard_delete(self, db: Session, item, cfg: EngineConfig) -> list[str]:
        return []

    def _filter_conditions(self, filters: dict[str, Any]) -> list:
        unknown = [k for k, v in filters.items() if v is not None]
        if unknown:
            raise ContentValidationError(f"Unknown filter(s): {', '.join(sorted(unknown))}", code="INVALID_FILTER")
        return []

    def _sitemap_conditions(self) -> list:
        return []

    # =========================================================================
    # CREATE
    # =========================================================================
    def create(self, db: Session, data, *, author_id: int):
        cfg, now = self._cfg(), self._now()

        title = self._clean_title(data.title)
        content = sanitize_html(data.content or "")
        words = count_words(content)
        self._check_word_count(words, cfg)
        if data.excerpt is not None:
            excerpt = sanitize_text(data.excerpt) or None
        else:
            excerpt = generate_excerpt(content, cfg.excerpt_length) or None

        item = self.model(
            title=title,
            slug=self.slugs.allocate(db, data.slug or title),
            content=content,
            excerpt=excerpt,
            status=DRAFT,
            author_id=author_id,
            word_count=words,
            reading_time=reading_time(words, cfg.reading_speed_wpm),
            revision=1,
            is_locked=False,
            locked_by=None,
            locked_at=None,
            is_system=False,
            meta_title=sanitize_text(data.meta_title) or None,
            meta_description=sanitize_text(data.meta_description) or None,
            structured_data=validate_structured_data(data.structured_data),
            password_hash=self._password_hash(data.password, cfg),
            created_at=now,
            updated_at=now,
        )
        self._prepare_new(db, item, data, cfg, now)

        target = SCHEDULED if data.scheduled_for is not None else data.status
        if target and target != DRAFT:
            self._apply_status(item, target, cfg=cfg, now=now, scheduled_for=data.scheduled_for)

        self.slugs.insert(db, item)
        self._after_create(db, item, data, cfg, now)
        db.flush()

        self.log.info("%s created: #%s %r (%s)", self.label, item.id, item.title, item.status)
        self._invalidate(db, ids=[item.id], slugs=[item.slug], paths=[self.path_for(item, cfg)])
        return item

    # =========================================================================
    # READ
    # =========================================================================
    def get(self, db: Session, item_id: int, *, include_deleted: bool = False):
        key = self.keys.by_id(item_id)
        if not include_deleted:
            cached = self._cache_get(key)
            if cached is not None:
                return cached
        item = self._load(db, item_id, include_deleted=include_deleted)
        out = self._to_out(item)
        if not include_deleted and item.deleted_at is None:
            self._cache_set(key, out, CACHE_TTL["item"])
        return out

    def get_by_slug(self, db: Session, slug: str):
        key = self.keys.by_slug(slug)
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        item = db.scalar(
            select(self.model).where(self.model.slug == slug, self.model.deleted_at.is_(None))
        )
        if item is None:
            raise NotFoundError(f"{self.label} not found", slug=slug)
        out = self._to_out(item)
        self._cache_set(key, out, CACHE_TTL["item"])
        return out

    def list(
        self,
        db: Session,
        *,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        author_id: Optional[int] = None,
        search: Optional[str] = None,
        include_deleted: bool = False,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        **filters: Any,
    ):
        cfg = self._cfg()
        page = max(1, int(page or 1))
        limit = min(max(1, int(limit or cfg.items_per_page)), cfg.max_items_per_page)
        sort_by = sort_by or self.default_sort[0]
        sort_order = (sort_order or self.default_sort[1]).lower()
        if sort_by not in self.sort_fields or sort_order not in ("asc", "desc"):
            raise ContentValidationError("Invalid sort", code="INVALID_SORT", sort_by=sort_by, sort_order=sort_order)
        if status is not None and status not in STATUSES:
            raise ContentValidationError(f"Unknown status '{status}'", code="INVALID_STATUS")
        search = search.strip()[:200] if search else None

        opts = {
            "page": page, "limit": limit, "status": status, "author_id": author_id,
            "search": search, "include_deleted": include_deleted,
            "sort_by": sort_by, "sort_order": sort_order, **filters,
        }
        key = self.keys.listing(hash_list_options(opts))
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        conds = []
        if not include_deleted:
            conds.append(self.model.deleted_at.is_(None))
        if status:
            conds.append(self.model.status == status)
        if author_id is not None:
            conds.append(self.model.author_id == author_id)
        if search:
            term = f"%{search}%"
            conds.append(
                or_(
                    self.model.title.ilike(term),
                    self.model.slug.ilike(term),
                    self.model.excerpt.ilike(term),
                    self.model.content.ilike(term),
                )
            )
        conds.extend(self._filter_conditions(dict(filters)))

        total = int(db.scalar(select(func.count()).select_from(self.model).where(*conds)) or 0)
        col = getattr(self.model, sort_by)
        order = col.asc() if sort_order == "asc" else col.desc()
        rows = db.scalars(
            select(self.model)
            .where(*conds)
            .order_by(order, self.model.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        result = Paginated[self.out_schema](
            items=[self._to_out(r) for r in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )
        self._cache_set(key, result, CACHE_TTL["list"])
        return result

    # =========================================================================
    # UPDATE
    # =========================================================================
    def update(self, db: Session, item_id: int, data, *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        item = self._load(db, item_id)
        self._assert_writable(item, actor_id, cfg)
        fields = set(data.model_fields_set)

        old_slug, old_path = item.slug, self.path_for(item, cfg)

        # ---- texto (cuenta como cambio de contenido) ----
        new_text: dict[str, Any] = {}
        if "title" in fields:
            if data.title is None:
                raise ContentValidationError("Title is required", code="TITLE_REQUIRED")
            title = self._clean_title(data.title)
            if title != item.title:
                new_text["title"] = title
        if "content" in fields:
            content = sanitize_html(data.content or "")
            if content != (item.content or ""):
                new_text["content"] = content
                self._check_word_count(count_words(content), cfg)
        if "excerpt" in fields:
            excerpt = sanitize_text(data.excerpt) or None
            if excerpt != item.excerpt:
                new_text["excerpt"] = excerpt
        elif "content" in new_text:
            excerpt = generate_excerpt(new_text["content"], cfg.excerpt_length) or None
            if excerpt != item.excerpt:
                new_text["excerpt"] = excerpt

        # ---- slug: fijo en items de sistema ----
        new_slug: Optional[str] = None
        if "slug" in fields and data.slug is not None:
            wanted = generate_slug(data.slug)
            if wanted != item.slug:
                if item.is_system:
                    raise ProtectedItemError(f"The slug of a system {self.kind} is immutable", id=item.id)
                new_slug = self.slugs.allocate(db, wanted, exclude_id=item.id)
        elif "title" in new_text and not item.is_system:
            if generate_slug(new_text["title"]) != item.slug:
                candidate = self.slugs.allocate(db, new_text["title"], exclude_id=item.id)
                if candidate != item.slug:
                    new_slug = candidate

        # ---- metadata (validada, aún sin escribir) ----
        meta: dict[str, Any] = {}
        if "meta_title" in fields:
            meta["meta_title"] = sanitize_text(data.meta_title) or None
        if "meta_description" in fields:
            meta["meta_description"] = sanitize_text(data.meta_description) or None
        if "structured_data" in fields:
            meta["structured_data"] = validate_structured_data(data.structured_data)
        if "password" in fields:
            meta["password_hash"] = self._password_hash(data.password, cfg)

        # ---- estado / programación ----
        status_in = data.status if "status" in fields else None
        scheduled_for = data.scheduled_for if "scheduled_for" in fields else None
        if "scheduled_for" in fields and status_in is None:
            if data.scheduled_for is None:
                # limpiar la fecha de un item programado lo devuelve a draft
                if item.status == SCHEDULED:
                    status_in = DRAFT
            else:
                status_in = SCHEDULED
        status_plan = None
        if status_in is not None:
            status_plan = self._check_status(item, status_in, cfg=cfg, now=now, scheduled_for=scheduled_for)

        prepared = self._check_update(db, item, data, fields, cfg)

        # A partir de aquí todas las validaciones pasaron: se escribe
        for field, value in meta.items():
            setattr(item, field, value)
        if status_plan is not None:
            self._write_status(item, *status_plan, now=now)

        # ---- snapshot del estado previo + bump de revisión ----
        if new_text:
            if cfg.enable_revisions:
                self.revision_store.snapshot(
                    db,
                    item,
                    revision_number=item.revision,
                    author_id=actor_id,
                    note=sanitize_text(data.change_note) or None,
                    max_revisions=cfg.max_revisions,
                    now=now,
                )
            for field, value in new_text.items():
                setattr(item, field, value)
            if "content" in new_text:
                item.word_count = count_words(item.content)
                item.reading_time = reading_time(item.word_count, cfg.reading_speed_wpm)
            item.revision = item.revision + 1

        if new_slug is not None:
            self.slugs.assign(db, item, new_slug)

        extra_paths = self._apply_update_extra(
            db, item, data, fields, cfg, now, prepared=prepared, slug_changed=new_slug is not None
        )

        item.updated_at = now
        db.flush()

        self.log.info("%s updated: #%s rev %s", self.label, item.id, item.revision)
        self._invalidate(
            db,
            ids=[item.id],
            slugs=[old_slug, item.slug],
            paths=[old_path, self.path_for(item, cfg), *extra_paths],
        )
        return item

    # =========================================================================
    # ESTADO
    # =========================================================================
    def change_status(
        self,
        db: Session,
        item_id: int,
        status: str,
        *,
        actor_id: Optional[int],
        scheduled_for: Optional[datetime] = None,
    ):
        cfg, now = self._cfg(), self._now()
        item = self._load(db, item_id)
        self._assert_writable(item, actor_id, cfg)
        src = item.status
        if self._apply_status(item, status, cfg=cfg, now=now, scheduled_for=scheduled_for):
            item.updated_at = now
            db.flush()
            self.log.info("%s #%s: %s → %s", self.label, item.id, src, item.status)
            self._invalidate(db, ids=[item.id], slugs=[item.slug], paths=[self.path_for(item, cfg)])
        return item

    def publish(self, db: Session, item_id: int, *, actor_id: Optional[int]):
        return self.change_status(db, item_id, PUBLISHED, actor_id=actor_id)

    def unpublish(self, db: Session, item_id: int, *, actor_id: Optional[int]):
        return self.change_status(db, item_id, DRAFT, actor_id=actor_id)

    def archive(self, db: Session, item_id: int, *, actor_id: Optional[int]):
        return self.change_status(db, item_id, ARCHIVED, actor_id=actor_id)

    def schedule(self, db: Session, item_id: int, when: datetime, *, actor_id: Optional[int]):
        return self.change_status(db, item_id, SCHEDULED, actor_id=actor_id, scheduled_for=when)

    def unschedule(self, db: Session, item_id: int, *, actor_id: Optional[int]):
        item = self._load(db, item_id)
        if item.status != SCHEDULED:
            raise ContentValidationError(f"{self.label} is not scheduled", code="NOT_SCHEDULED")
        return self.change_status(db, item_id, DRAFT, actor_id=actor_id)

    # =========================================================================
    # DELETE & RESTORE
    # =========================================================================
    def _do_soft_delete(self, item, now: datetime) -> None:
        item.status = ARCHIVED
        item.archived_at = now
        item.deleted_at = now
        item.scheduled_for = None
        item.updated_at = now

    def soft_delete(self, db: Session, item_id: int, *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        item = self._load(db, item_id)
        self._assert_not_protected(item, "deleted")
        self._assert_writable(item, actor_id, cfg)
        self._do_soft_delete(item, now)
        db.flush()
        self.log.info("%s soft-deleted: #%s", self.label, item.id)
        self._invalidate(db, ids=[item.id], slugs=[item.slug], paths=[self.path_for(item, cfg)])
        return item

    def _do_hard_delete(self, db: Session, item, cfg: EngineConfig) -> tuple[list[str], list[str]]:
        paths = [self.path_for(item, cfg), *self._before_hard_delete(db, item, cfg)]
        slugs = [item.slug]
        # Revisiones primero, luego la fila
        self.revision_store.delete_all(db, item.id)
        db.delete(item)
        db.flush()
        return slugs, paths

    def hard_delete(self, db: Session, item_id: int, *, actor_id: Optional[int]) -> None:
        cfg = self._cfg()
        item = self._load(db, item_id, include_deleted=True)
        self._assert_not_protected(item, "deleted")
        self._assert_writable(item, actor_id, cfg)
        slugs, paths = self._do_hard_delete(db, item, cfg)
        self.log.info("%s hard-deleted: #%s", self.label, item_id)
        self._invalidate(db, ids=[item_id], slugs=slugs, paths=paths)

    def _do_restore(self, db: Session, item_id: int, actor_id: Optional[int], cfg: EngineConfig, now: datetime):
        item = self._load(db, item_id, include_deleted=True)
        if item.deleted_at is None:
            raise NotFoundError(f"Deleted {self.kind} not found", id=item_id)
        self._assert_writable(item, actor_id, cfg)
        item.deleted_at = None
        item.status = DRAFT
        item.scheduled_for = None
        item.updated_at = now
        db.flush()
        return item

    def restore(self, db: Session, item_id: int, *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        item = self._do_restore(db, item_id, actor_id, cfg, now)
        self.log.info("%s restored: #%s", self.label, item.id)
        self._invalidate(db, ids=[item.id], slugs=[item.slug], paths=[self.path_for(item, cfg)])
        return item

    # =========================================================================
    # REVISIONS
    # =========================================================================
    def revisions(self, db: Session, item_id: int) -> list:
        self._load(db, item_id, include_deleted=True)
        return self.revision_store.list(db, item_id)

    def revision(self, db: Session, item_id: int, revision_id: int):
        self._load(db, item_id, include_deleted=True)
        return self.revision_store.get(db, item_id, revision_id)

    def diff_revisions(self, db: Session, item_id: int, from_id: int, to_id: int) -> RevisionDiff:
        self._load(db, item_id, include_deleted=True)
        return RevisionDiff(**self.revision_store.diff(db, item_id, from_id, to_id))

    def _restore_revision_fields(self, item, rev) -> None:
        item.title = rev.title
        item.content = rev.content or ""
        item.excerpt = rev.excerpt

    def restore_revision(self, db: Session, item_id: int, revision_id: int, *, actor_id: Optional[int]):
        """
        Checkpoint the live state (numbered revision+1) so it is never lost, copy the
        target revision's text back and leave the counter at revision+2.
        """
        cfg, now = self._cfg(), self._now()
        if not cfg.enable_revisions:
            raise FeatureDisabledError("Revisions are disabled", code="REVISIONS_DISABLED")
        item = self._load(db, item_id)
        self._assert_writable(item, actor_id, cfg)
        rev = self.revision_store.get(db, item.id, revision_id)

        # Copia antes del snapshot: la poda podría expulsar la revisión destino
        target = self.revision_model(
            item_id=rev.item_id,
            title=rev.title,
            content=rev.content,
            excerpt=rev.excerpt,
            revision_number=rev.revision_number,
        )
        if hasattr(rev, "template"):
            target.template = rev.template

        checkpoint_number = item.revision + 1
        self.revision_store.snapshot(
            db,
            item,
            revision_number=checkpoint_number,
            author_id=actor_id,
            note=f"Before restoring to revision #{target.revision_number}",
            max_revisions=cfg.max_revisions,
            now=now,
        )

        self._restore_revision_fields(item, target)
        item.word_count = count_words(item.content)
        item.reading_time = reading_time(item.word_count, cfg.reading_speed_wpm)
        item.revision = checkpoint_number + 1
        item.updated_at = now
        db.flush()

        self.log.info(
            "%s #%s restored to revision #%s by %s", self.label, item.id, target.revision_number, actor_id
        )
        self._invalidate(db, ids=[item.id], slugs=[item.slug], paths=[self.path_for(item, cfg)])
        return item

    # =========================================================================
    # LOCKS
    # =========================================================================
    def acquire_lock(self, db: Session, item_id: int, actor_id: int) -> LockInfo:
        cfg, now = self._cfg(), self._now()
        if not cfg.enable_locking:
            raise FeatureDisabledError("Locking is disabled", code="LOCKING_DISABLED")
        item = self._load(db, item_id)
        info = self.locks.acquire(db, item, actor_id, timeout_minutes=cfg.lock_timeout_minutes, now=now)
        self._invalidate(db, ids=[item.id], slugs=[item.slug])
        return LockInfo(**info)

    def release_lock(self, db: Session, item_id: int, actor_id: Optional[int], *, force: bool = False) -> LockInfo:
        cfg, now = self._cfg(), self._now()
        item = self._load(db, item_id, include_deleted=True)
        info = self.locks.release(
            db, item, actor_id, force=force, timeout_minutes=cfg.lock_timeout_minutes, now=now
        )
        self._invalidate(db, ids=[item.id], slugs=[item.slug])
        return LockInfo(**info)

    def lock_status(self, db: Session, item_id: int) -> LockInfo:
        cfg, now = self._cfg(), self._now()
        item = self._load(db, item_id, include_deleted=True)
        return LockInfo(**lock_info(item, timeout_minutes=cfg.lock_timeout_minutes, now=now))

    def release_stale_locks(self, db: Session) -> int:
        cfg, now = self._cfg(), self._now()
        count = self.locks.sweep_expired(db, timeout_minutes=cfg.lock_timeout_minutes, now=now)
        if count:
            self.invalidation.flush_namespace()
        return count

    # =========================================================================
    # SCHEDULING
    # =========================================================================
    def scheduled(self, db: Session) -> list[ScheduledItem]:
        rows = db.scalars(
            select(self.model)
            .where(
                self.model.status == SCHEDULED,
                self.model.scheduled_for.is_not(None),
                self.model.deleted_at.is_(None),
            )
            .order_by(self.model.scheduled_for.asc())
        ).all()
        return [
            ScheduledItem(id=r.id, title=r.title, slug=r.slug, scheduled_for=r.scheduled_for) for r in rows
        ]

    def process_scheduled(self, db: Session) -> ScheduleProcessResult:
        """
        Publish every scheduled item whose date has passed. Per-item failures are
        collected; invalidation and revalidation run once for the whole batch.
        """
        cfg, now = self._cfg(), self._now()
        result = ScheduleProcessResult()
        if not cfg.enable_scheduling:
            return result

        due = db.scalars(
            select(self.model)
            .where(
                self.model.status == SCHEDULED,
                self.model.scheduled_for <= now,
                self.model.deleted_at.is_(None),
            )
            .order_by(self.model.scheduled_for.asc(), self.model.id.asc())
        ).all()

        ids, slugs, paths = [], [], []
        for item in due:
            item_id = item.id
            result.processed += 1
            try:
                with db.begin_nested():
                    self._apply_status(item, PUBLISHED, cfg=cfg, now=now)
                    item.updated_at = now
                    db.flush()
            except (ContentError, SQLAlchemyError) as exc:
                code = exc.code if isinstance(exc, ContentError) else "STORAGE_ERROR"
                self.log.warning("Scheduled publish failed for %s #%s: %s", self.kind, item_id, exc)
                result.errors.append(ScheduleError(id=item_id, code=str(code), error=str(exc)))
                continue
            result.published.append(item_id)
            ids.append(item_id)
            slugs.append(item.slug)
            paths.append(self.path_for(item, cfg))

        if result.published:
            self.log.info("Published %d scheduled %s(s)", len(result.published), self.kind)
            self._invalidate(db, ids=ids, slugs=slugs, paths=paths)
        return result

    # =========================================================================
    # BULK
    # =========================================================================
    def _bulk_ids(self, ids: Any, cfg: EngineConfig) -> list[int]:
        normalized = normalize_ids(ids)
        if not normalized:
            raise ContentValidationError("No valid IDs provided", code="EMPTY_IDS")
        if len(normalized) > cfg.max_bulk_size:
            raise LimitExceededError(
                f"Maximum {cfg.max_bulk_size} items per batch",
                code="BULK_LIMIT_EXCEEDED",
                max_bulk_size=cfg.max_bulk_size,
                received=len(normalized),
            )
        return normalized

    def _run_bulk(self, db: Session, item_ids: list[int], op: BulkOp, *, label: str) -> BulkResult:
        """Each id runs in its own SAVEPOINT; failures land in `errors`, never abort the batch."""
        result = BulkResult()
        ids: list[int] = []
        slugs: list[str] = []
        paths: list[str] = []
        for item_id in item_ids:
            try:
                with db.begin_nested():
                    item_slugs, item_paths = op(item_id)
            except ContentError as exc:
                result.errors.append(BulkItemError(id=item_id, code=exc.code, error=exc.message))
                continue
            except SQLAlchemyError as exc:
                self.log.warning("Bulk %s failed on %s #%s: %s", label, self.kind, item_id, exc)
                result.errors.append(BulkItemError(id=item_id, code="STORAGE_ERROR", error=exc.__class__.__name__))
                continue
            result.count += 1
            ids.append(item_id)
            slugs.extend(item_slugs)
            paths.extend(item_paths)

        if result.errors:
            self.log.warning(
                "Bulk %s: %d %s(s), %d error(s)", label, result.count, self.kind, len(result.errors)
            )
        else:
            self.log.info("Bulk %s: %d %s(s)", label, result.count, self.kind)
        if result.count:
            self._invalidate(db, ids=ids, slugs=slugs, paths=paths)
        return result

    def bulk_update_status(
        self,
        db: Session,
        ids: Any,
        status: str,
        *,
        actor_id: Optional[int],
        scheduled_for: Optional[datetime] = None,
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)
        if status not in STATUSES:
            raise ContentValidationError(f"Unknown status '{status}'", code="INVALID_STATUS")
        if status == SCHEDULED:
            scheduled_for = self._validate_schedule(scheduled_for, cfg, now)

        def op(item_id: int):
            item = self._load(db, item_id)
            if status in PROTECTED_BULK_STATUSES:
                self._assert_not_protected(item, f"set to {status} in bulk")
            self._assert_writable(item, actor_id, cfg)
            if self._apply_status(item, status, cfg=cfg, now=now, scheduled_for=scheduled_for):
                item.updated_at = now
            db.flush()
            return [item.slug], [self.path_for(item, cfg)]

        return self._run_bulk(db, item_ids, op, label=f"status → {status}")

    def bulk_delete(
        self, db: Session, ids: Any, *, permanent: bool = False, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)

        def op(item_id: int):
            item = self._load(db, item_id, include_deleted=permanent)
            self._assert_not_protected(item, "deleted")
            self._assert_writable(item, actor_id, cfg)
            if permanent:
                return self._do_hard_delete(db, item, cfg)
            self._do_soft_delete(item, now)
            db.flush()
            return [item.slug], [self.path_for(item, cfg)]

        return self._run_bulk(db, item_ids, op, label="hard-delete" if permanent else "soft-delete")

    def bulk_schedule(
        self, db: Session, ids: Any, when: datetime, *, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)
        when = self._validate_schedule(when, cfg, now)

        def op(item_id: int):
            item = self._load(db, item_id)
            self._assert_not_protected(item, "scheduled in bulk")
            self._assert_writable(item, actor_id, cfg)
            self._apply_status(item, SCHEDULED, cfg=cfg, now=now, scheduled_for=when)
            item.updated_at = now
            db.flush()
            return [item.slug], [self.path_for(item, cfg)]

        return self._run_bulk(db, item_ids, op, label="schedule")

    def bulk_restore(self, db: Session, ids: Any, *, actor_id: Optional[int]) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)

        def op(item_id: int):
            item = self._do_restore(db, item_id, actor_id, cfg, now)
            return [item.slug], [self.path_for(item, cfg)]

        return self._run_bulk(db, item_ids, op, label="restore")

    # =========================================================================
    # AGREGADOS
    # =========================================================================
    def stats(self, db: Session) -> ContentStats:
        key = self.keys.aggregate("stats")
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        live = self.model.deleted_at.is_(None)
        by_status = dict(
            db.execute(
                select(self.model.status, func.count()).where(live).group_by(self.model.status)
            ).all()
        )
        total = sum(by_status.values())
        system = int(
            db.scalar(select(func.count()).select_from(self.model).where(live, self.model.is_system.is_(True)))
            or 0
        )
        deleted = int(
            db.scalar(select(func.count()).select_from(self.model).where(self.model.deleted_at.is_not(None)))
            or 0
        )
        stats = ContentStats(
            total=total,
            draft=by_status.get(DRAFT, 0),
            published=by_status.get(PUBLISHED, 0),
            scheduled=by_status.get(SCHEDULED, 0),
            archived=by_status.get(ARCHIVED, 0),
            system=system,
            custom=total - system,
            deleted=deleted,
        )
        self._cache_set(key, stats, CACHE_TTL["stats"])
        return stats

    def sitemap_paths(self, db: Session) -> list[SitemapEntry]:
        key = self.keys.aggregate("sitemap")
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        cfg = self._cfg()
        rows = db.scalars(
            select(self.model)
            .where(
                self.model.status == PUBLISHED,
                self.model.deleted_at.is_(None),
                self.model.password_hash.is_(None),
                *self._sitemap_conditions(),
            )
            .order_by(self.model.id.asc())
        ).all()
        entries = [SitemapEntry(path=self.path_for(r, cfg), updated_at=r.updated_at) for r in rows]
        self._cache_set(key, entries, CACHE_TTL["sitemap"])
        return entries

    def verify_password(self, db: Session, item_id: int, plain: str) -> bool:
        item = self._load(db, item_id)
        return verify_password(plain, item.password_hash)
