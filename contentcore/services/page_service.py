# contentcore/services/page_service.py
# Pages: jerarquía, páginas de sistema, home page, plantillas/visibilidad e inyección de código
from __future__ import annotations

from datetime import datetime
from typing import Any, NamedTuple, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from contentcore.core.errors import ContentValidationError, FeatureDisabledError, NotFoundError
from contentcore.core.runtime_config import EngineConfig
from contentcore.models.content import PUBLISHED
from contentcore.models.pages import Page, PageRevision
from contentcore.schemas.content import BulkResult
from contentcore.schemas.pages import (
    PAGE_TEMPLATES,
    PAGE_VISIBILITIES,
    PageOut,
    PageTreeNode,
    SystemPageRegistration,
)
from contentcore.services.cache_service import CACHE_TTL
from contentcore.services.hierarchy_service import HierarchyManager
from contentcore.services.lifecycle_service import ContentEngine
from contentcore.services.sanitization import sanitize_css, sanitize_head_html
from contentcore.services.text import count_words, normalize_ids, reading_time


class SystemPage(NamedTuple):
    key: str
    slug: str
    title: str
    template: str
    description: str


# Fuente única de verdad de las páginas de sistema
SYSTEM_PAGES: tuple[SystemPage, ...] = (
    SystemPage("HOME", "", "Home", "full_width", "Site homepage / landing page"),
    SystemPage("ABOUT", "about", "About", "default", "About us page"),
    SystemPage("CONTACT", "contact", "Contact", "default", "Contact page"),
    SystemPage("FAQ", "faq", "FAQ", "default", "Frequently asked questions"),
    SystemPage("PRIVACY_POLICY", "privacy-policy", "Privacy Policy", "default", "Privacy policy"),
    SystemPage("TERMS_OF_SERVICE", "terms-of-service", "Terms of Service", "default", "Terms of service"),
    SystemPage("COOKIE_POLICY", "cookie-policy", "Cookie Policy", "default", "Cookie policy"),
    SystemPage("DISCLAIMER", "disclaimer", "Disclaimer", "default", "Legal disclaimer"),
    SystemPage("SITEMAP", "sitemap", "Sitemap", "full_width", "Human-readable sitemap"),
    SystemPage("NOT_FOUND", "404", "Page Not Found", "blank", "Shown when a page does not exist"),
    SystemPage("MAINTENANCE", "maintenance", "Under Maintenance", "blank", "Shown during maintenance"),
    SystemPage("COMING_SOON", "coming-soon", "Coming Soon", "landing", "Pre-launch placeholder"),
    SystemPage("SEARCH_RESULTS", "search", "Search Results", "default", "Site search results"),
    SystemPage("BLOG_INDEX", "blog", "Blog", "default", "Blog index"),
    SystemPage("ARCHIVE", "archive", "Archive", "default", "Content archive"),
    SystemPage("CATEGORIES", "categories", "Categories", "default", "Category index"),
    SystemPage("TAGS", "tags", "Tags", "default", "Tag index"),
    SystemPage("LOGIN", "login", "Login", "blank", "Sign-in page"),
    SystemPage("REGISTER", "register", "Register", "blank", "Sign-up page"),
    SystemPage("FORGOT_PASSWORD", "forgot-password", "Forgot Password", "blank", "Password recovery"),
    SystemPage("RESET_PASSWORD", "reset-password", "Reset Password", "blank", "Password reset"),
    SystemPage("DASHBOARD", "dashboard", "Dashboard", "sidebar_left", "User dashboard"),
    SystemPage("PROFILE", "profile", "Profile", "default", "User profile"),
    SystemPage("SETTINGS", "settings", "Settings", "default", "User settings"),
)

SYSTEM_PAGE_KEYS = tuple(p.key for p in SYSTEM_PAGES)
RESERVED_PAGE_SLUGS = frozenset(p.slug for p in SYSTEM_PAGES if p.slug)

CODE_FIELDS = ("custom_css", "custom_head", "custom_js")


class PageEngine(ContentEngine):
    kind = "page"
    model = Page
    revision_model = PageRevision
    out_schema = PageOut
    cache_prefix = "pages"

    title_min_length = 2
    fallback_slug = "page"
    reserved_slugs = RESERVED_PAGE_SLUGS

    sort_fields = ContentEngine.sort_fields + ("sort_order", "path", "depth")
    default_sort = ("sort_order", "asc")

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.hierarchy = HierarchyManager(Page)

    def path_for(self, item, cfg: EngineConfig) -> str:
        return item.path

    # ------------------------------------------------------------------
    # Validaciones propias
    # ------------------------------------------------------------------
    @staticmethod
    def _check_template(template: str) -> str:
        if template not in PAGE_TEMPLATES:
            raise ContentValidationError(f"Unknown template '{template}'", code="INVALID_TEMPLATE")
        return template

    @staticmethod
    def _check_visibility(visibility: str) -> str:
        if visibility not in PAGE_VISIBILITIES:
            raise ContentValidationError(f"Unknown visibility '{visibility}'", code="INVALID_VISIBILITY")
        return visibility

    @staticmethod
    def _require_hierarchy(cfg: EngineConfig) -> None:
        if not cfg.enable_hierarchy:
            raise FeatureDisabledError("Hierarchy is disabled", code="HIERARCHY_DISABLED")

    @staticmethod
    def _check_code_injection(data, fields: set[str], cfg: EngineConfig) -> None:
        requested = [f for f in CODE_FIELDS if f in fields and getattr(data, f)]
        if requested and not cfg.allow_code_injection:
            raise FeatureDisabledError("Code injection is disabled", code="CODE_INJECTION_DISABLED")

    def _apply_code_injection(self, item, data, fields: set[str], cfg: EngineConfig) -> None:
        if not cfg.allow_code_injection:
            return
        if "custom_css" in fields:
            item.custom_css = sanitize_css(data.custom_css) or None
        if "custom_head" in fields:
            item.custom_head = sanitize_head_html(data.custom_head) or None
        if "custom_js" in fields:
            item.custom_js = data.custom_js or None

    # ------------------------------------------------------------------
    # Hooks del engine
    # ------------------------------------------------------------------
    def _prepare_new(self, db: Session, item, data, cfg: EngineConfig, now: datetime) -> None:
        fields = set(data.model_fields_set)
        self._check_code_injection(data, fields, cfg)
        item.template = self._check_template(data.template or cfg.default_template)
        item.visibility = self._check_visibility(data.visibility or cfg.default_visibility)
        item.sort_order = data.sort_order or 0
        item.is_home_page = False

        parent = None
        if data.parent_id is not None:
            self._require_hierarchy(cfg)
            parent = self.hierarchy.resolve_parent(db, None, data.parent_id, max_depth=cfg.max_depth)
        self.hierarchy.place(item, parent, base=cfg.base_path)
        self._apply_code_injection(item, data, fields, cfg)

    def _check_update(self, db: Session, item, data, fields: set[str], cfg: EngineConfig) -> dict[str, Any]:
        prepared: dict[str, Any] = {}
        if "template" in fields and data.template is not None:
            prepared["template"] = self._check_template(data.template)
        if "visibility" in fields and data.visibility is not None:
            prepared["visibility"] = self._check_visibility(data.visibility)
        self._check_code_injection(data, fields, cfg)
        if "parent_id" in fields and data.parent_id != item.parent_id:
            self._require_hierarchy(cfg)
            self._assert_not_protected(item, "moved")
            prepared["parent"] = self.hierarchy.resolve_parent(
                db, item, data.parent_id, max_depth=cfg.max_depth
            )
        return prepared

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
        if "template" in prepared:
            item.template = prepared["template"]
        if "visibility" in prepared:
            item.visibility = prepared["visibility"]
        if "sort_order" in fields and data.sort_order is not None:
            item.sort_order = data.sort_order
        self._apply_code_injection(item, data, fields, cfg)

        if "parent" in prepared or slug_changed:
            parent = prepared["parent"] if "parent" in prepared else (
                db.get(Page, item.parent_id) if item.parent_id is not None else None
            )
            old_path = item.path
            self.hierarchy.place(item, parent, base=cfg.base_path)
            db.flush()
            changed = [old_path, item.path] if old_path != item.path else []
            return changed + self.hierarchy.rebuild_descendants(db, item, base=cfg.base_path)
        return []

    def _restore_revision_fields(self, item, rev) -> None:
        super()._restore_revision_fields(item, rev)
        if rev.template:
            item.template = rev.template

    def _before_hard_delete(self, db: Session, item, cfg: EngineConfig) -> list[str]:
        """Children of a hard-deleted page become roots."""
        paths: list[str] = []
        for child in self.hierarchy.children(db, item.id, include_deleted=True):
            old_path = child.path
            self.hierarchy.place(child, None, base=cfg.base_path)
            paths.extend([old_path, child.path])
            db.flush()
            paths.extend(self.hierarchy.rebuild_descendants(db, child, base=cfg.base_path))
        return paths

    def _filter_conditions(self, filters: dict[str, Any]) -> list:
        conds = []
        if "parent_id" in filters:
            parent_id = filters.pop("parent_id")
            if parent_id is not None:
                conds.append(Page.parent_id == parent_id)
        if filters.pop("root_only", None):
            conds.append(Page.parent_id.is_(None))
        template = filters.pop("template", None)
        if template is not None:
            conds.append(Page.template == template)
        visibility = filters.pop("visibility", None)
        if visibility is not None:
            conds.append(Page.visibility == visibility)
        is_system = filters.pop("is_system", None)
        if is_system is not None:
            conds.append(Page.is_system.is_(bool(is_system)))
        return conds + super()._filter_conditions(filters)

    def _sitemap_conditions(self) -> list:
        return [Page.visibility == "public"]

    # =========================================================================
    # SYSTEM PAGES
    # =========================================================================
    def bootstrap_system_pages(self, db: Session, *, author_id: int) -> list[SystemPageRegistration]:
        """
        Create every registry entry that is missing. Existing rows are left alone
        and reported with is_registered=True. Idempotent.
        """
        cfg, now = self._cfg(), self._now()
        if not cfg.auto_register_system_pages:
            return []

        results: list[SystemPageRegistration] = []
        created_paths: list[str] = []
        for entry in SYSTEM_PAGES:
            existing = db.scalar(select(Page).where(Page.system_key == entry.key))
            if existing is not None:
                results.append(
                    SystemPageRegistration(
                        key=entry.key, slug=existing.slug, title=existing.title,
                        template=existing.template, is_registered=True,
                    )
                )
                continue

            slug = entry.slug
            if slug and self.slugs.is_taken(db, slug):
                slug = self.slugs.allocate(db, slug, allow_reserved=True)
            words = count_words(entry.description)
            page = Page(
                title=entry.title,
                slug=slug,
                content=f"<p>{entry.description}</p>",
                excerpt=entry.description,
                status=PUBLISHED,
                author_id=author_id,
                word_count=words,
                reading_time=reading_time(words, cfg.reading_speed_wpm),
                revision=1,
                is_locked=False,
                is_system=True,
                system_key=entry.key,
                is_home_page=entry.key == "HOME",
                template=entry.template,
                visibility="public",
                parent_id=None,
                depth=0,
                sort_order=0,
                path=f"/{slug}" if slug else "/",
                meta_title=entry.title,
                meta_description=entry.description,
                published_at=now,
                created_at=now,
                updated_at=now,
            )
            self.slugs.insert(db, page)
            created_paths.append(page.path)
            results.append(
                SystemPageRegistration(
                    key=entry.key, slug=slug, title=entry.title, template=entry.template, is_registered=False
                )
            )
            self.log.info("System page registered: %s → %s", entry.key, page.path)

        if created_paths:
            self._invalidate(db, paths=created_paths)
        return results

    def system_pages(self, db: Session) -> list[PageOut]:
        key = self.keys.aggregate("system")
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        rows = db.scalars(
            select(Page)
            .where(Page.is_system.is_(True), Page.deleted_at.is_(None))
            .order_by(Page.sort_order.asc(), Page.id.asc())
        ).all()
        out = [self._to_out(r) for r in rows]
        self._cache_set(key, out, CACHE_TTL["system"])
        return out

    def get_by_system_key(self, db: Session, system_key: str) -> PageOut:
        page = db.scalar(select(Page).where(Page.system_key == system_key, Page.deleted_at.is_(None)))
        if page is None:
            raise NotFoundError("System page not found", system_key=system_key)
        return self._to_out(page)

    # =========================================================================
    # HOME PAGE
    # =========================================================================
    def set_home_page(self, db: Session, page_id: int, *, actor_id: Optional[int]):
        """Moves the home flag; slug, status and system flag stay untouched."""
        cfg, now = self._cfg(), self._now()
        page = db.get(Page, page_id)
        if page is None:
            raise NotFoundError("Page not found", id=page_id)
        if page.deleted_at is not None:
            raise ContentValidationError("Cannot set a deleted page as home", code="PAGE_DELETED", id=page_id)
        self._assert_writable(page, actor_id, cfg)

        previous = db.scalars(select(Page.id).where(Page.is_home_page.is_(True), Page.id != page.id)).all()
        db.execute(
            update(Page)
            .where(Page.is_home_page.is_(True), Page.id != page.id)
            .values(is_home_page=False)
            .execution_options(synchronize_session="fetch")
        )
        page.is_home_page = True
        page.updated_at = now
        db.flush()

        self.log.info("Home page set to #%s %r", page.id, page.title)
        self._invalidate(db, ids=[page.id, *previous], slugs=[page.slug], paths=["/", page.path])
        return page

    def home_page(self, db: Session) -> Optional[PageOut]:
        key = self.keys.aggregate("home")
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        page = db.scalar(select(Page).where(Page.is_home_page.is_(True), Page.deleted_at.is_(None)))
        if page is None:
            return None
        out = self._to_out(page)
        self._cache_set(key, out, CACHE_TTL["item"])
        return out

    # =========================================================================
    # HIERARCHY
    # =========================================================================
    def tree(self, db: Session) -> list[PageTreeNode]:
        key = self.keys.aggregate("tree")
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        rows = db.scalars(
            select(Page).where(Page.deleted_at.is_(None)).order_by(Page.sort_order.asc(), Page.id.asc())
        ).all()
        out = [PageTreeNode.model_validate(n) for n in self.hierarchy.build_tree(list(rows))]
        self._cache_set(key, out, CACHE_TTL["tree"])
        return out

    def ancestors(self, db: Session, page_id: int) -> list[PageOut]:
        key = self.keys.ancestors(page_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        page = self._load(db, page_id)
        out = [self._to_out(p) for p in self.hierarchy.ancestors(db, page)]
        self._cache_set(key, out, CACHE_TTL["ancestors"])
        return out

    def children(self, db: Session, parent_id: Optional[int]) -> list[PageOut]:
        key = self.keys.children(parent_id if parent_id is not None else 0)
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        if parent_id is not None:
            self._load(db, parent_id)
        out = [self._to_out(p) for p in self.hierarchy.children(db, parent_id)]
        self._cache_set(key, out, CACHE_TTL["children"])
        return out

    def descendants(self, db: Session, page_id: int) -> list[PageOut]:
        self._load(db, page_id)
        return [self._to_out(p) for p in self.hierarchy.descendants(db, page_id)]

    def siblings(self, db: Session, page_id: int) -> list[PageOut]:
        page = self._load(db, page_id)
        return [self._to_out(p) for p in self.hierarchy.siblings(db, page)]

    def _do_move(self, db: Session, page, parent_id: Optional[int], cfg: EngineConfig, now: datetime) -> list[str]:
        self._assert_not_protected(page, "moved")
        if parent_id == page.parent_id:
            return []
        paths = self.hierarchy.set_parent(db, page, parent_id, max_depth=cfg.max_depth, base=cfg.base_path)
        page.updated_at = now
        db.flush()
        return paths

    def move(self, db: Session, page_id: int, parent_id: Optional[int], *, actor_id: Optional[int]):
        cfg, now = self._cfg(), self._now()
        self._require_hierarchy(cfg)
        page = self._load(db, page_id)
        self._assert_writable(page, actor_id, cfg)
        old_parent = page.parent_id
        paths = self._do_move(db, page, parent_id, cfg, now)
        if paths:
            self.log.info("Page #%s moved: parent %s → %s", page.id, old_parent, page.parent_id)
            self._invalidate(db, ids=[page.id], slugs=[page.slug], paths=paths)
        return page

    # =========================================================================
    # BULK (propios de pages)
    # =========================================================================
    def bulk_move(
        self, db: Session, ids: Any, parent_id: Optional[int], *, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        self._require_hierarchy(cfg)
        item_ids = self._bulk_ids(ids, cfg)

        def op(item_id: int):
            page = self._load(db, item_id)
            self._assert_writable(page, actor_id, cfg)
            paths = self._do_move(db, page, parent_id, cfg, now)
            return [page.slug], paths or [page.path]

        return self._run_bulk(db, item_ids, op, label="move")

    def bulk_reorder(self, db: Session, items: list, *, actor_id: Optional[int]) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        orders: dict[int, int] = {}
        for entry in items or []:
            if isinstance(entry, dict):
                raw_id, order = entry.get("id"), entry.get("sort_order", 0)
            else:
                raw_id, order = entry.id, entry.sort_order
            for item_id in normalize_ids([raw_id]):
                orders.setdefault(item_id, order)
        item_ids = self._bulk_ids(list(orders), cfg)

        def op(item_id: int):
            page = self._load(db, item_id)
            self._assert_writable(page, actor_id, cfg)
            page.sort_order = int(orders[item_id] or 0)
            page.updated_at = now
            db.flush()
            return [page.slug], [page.path]

        return self._run_bulk(db, item_ids, op, label="reorder")

    def bulk_set_template(
        self, db: Session, ids: Any, template: str, *, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)
        self._check_template(template)

        def op(item_id: int):
            page = self._load(db, item_id)
            self._assert_writable(page, actor_id, cfg)
            page.template = template
            page.updated_at = now
            db.flush()
            return [page.slug], [page.path]

        return self._run_bulk(db, item_ids, op, label=f"template → {template}")

    def bulk_set_visibility(
        self, db: Session, ids: Any, visibility: str, *, actor_id: Optional[int]
    ) -> BulkResult:
        cfg, now = self._cfg(), self._now()
        item_ids = self._bulk_ids(ids, cfg)
        self._check_visibility(visibility)

        def op(item_id: int):
            page = self._load(db, item_id)
            self._assert_writable(page, actor_id, cfg)
            page.visibility = visibility
            page.updated_at = now
            db.flush()
            return [page.slug], [page.path]

        return self._run_bulk(db, item_ids, op, label=f"visibility → {visibility}")
