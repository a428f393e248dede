# contentcore/core/runtime_config.py
# Config del engine en caliente: snapshot inmutable + proveedor con swap atómico
from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from contentcore.core.settings import Settings, settings as default_settings


class EngineConfig(BaseModel):
    """Runtime tunables of one content engine. Instances are immutable snapshots."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    lock_timeout_minutes: int = Field(30, ge=1)
    max_depth: int = Field(6, ge=0)
    max_revisions: int = Field(50, ge=0)  # 0 = sin límite
    max_bulk_size: int = Field(100, ge=1)
    items_per_page: int = Field(20, ge=1)
    max_items_per_page: int = Field(100, ge=1)
    reading_speed_wpm: int = Field(200, ge=1)
    excerpt_length: int = Field(200, ge=10)
    min_word_count: int = Field(0, ge=0)
    max_categories_per_item: int = Field(5, ge=1)

    enable_hierarchy: bool = False
    enable_locking: bool = True
    enable_revisions: bool = True
    enable_scheduling: bool = True
    enable_password_protection: bool = True
    allow_code_injection: bool = False
    auto_register_system_pages: bool = True

    default_template: str = "default"
    default_visibility: str = "public"
    base_path: str = ""


class ConfigProvider:
    """
    Read-through provider. Engines call snapshot() once per operation and never
    keep the result across calls.

    - With a loader, every snapshot() re-reads the source and applies overrides.
    - update(**changes) validates the merged config and swaps it atomically.
    """

    def __init__(
        self,
        initial: Optional[EngineConfig] = None,
        *,
        loader: Optional[Callable[[], EngineConfig]] = None,
    ) -> None:
        self._loader = loader
        self._current = initial or (loader() if loader else EngineConfig())
        self._overrides: dict[str, Any] = {}
        self._lock = threading.Lock()

    def snapshot(self) -> EngineConfig:
        if self._loader is None:
            with self._lock:
                return self._current
        base = self._loader()
        with self._lock:
            overrides = dict(self._overrides)
        if not overrides:
            return base
        return EngineConfig.model_validate({**base.model_dump(), **overrides})

    def update(self, **changes: Any) -> EngineConfig:
        with self._lock:
            merged = {**self._current.model_dump(), **self._overrides, **changes}
            new_cfg = EngineConfig.model_validate(merged)
            if self._loader is None:
                self._current = new_cfg
            else:
                self._overrides.update(changes)
            return new_cfg


def pages_config_from_settings(s: Settings = default_settings) -> EngineConfig:
    return EngineConfig(
        lock_timeout_minutes=s.PAGES_LOCK_TIMEOUT_MINUTES,
        max_depth=s.PAGES_MAX_DEPTH,
        max_revisions=s.PAGES_MAX_REVISIONS,
        max_bulk_size=s.PAGES_MAX_BULK_SIZE,
        items_per_page=s.PAGES_PER_PAGE,
        max_items_per_page=s.PAGES_MAX_PER_PAGE,
        reading_speed_wpm=s.PAGES_READING_SPEED_WPM,
        excerpt_length=s.PAGES_EXCERPT_LENGTH,
        min_word_count=s.PAGES_MIN_WORD_COUNT,
        enable_hierarchy=s.PAGES_ENABLE_HIERARCHY,
        enable_locking=s.PAGES_ENABLE_LOCKING,
        enable_revisions=s.PAGES_ENABLE_REVISIONS,
        enable_scheduling=s.PAGES_ENABLE_SCHEDULING,
        enable_password_protection=s.PAGES_ENABLE_PASSWORD_PROTECTION,
        allow_code_injection=s.PAGES_ALLOW_CODE_INJECTION,
        auto_register_system_pages=s.PAGES_AUTO_REGISTER_SYSTEM_PAGES,
        default_template=s.PAGES_DEFAULT_TEMPLATE,
        default_visibility=s.PAGES_DEFAULT_VISIBILITY,
    )


def blog_config_from_settings(s: Settings = default_settings) -> EngineConfig:
    return EngineConfig(
        lock_timeout_minutes=s.BLOG_LOCK_TIMEOUT_MINUTES,
        max_revisions=s.BLOG_MAX_REVISIONS,
        max_bulk_size=s.BLOG_MAX_BULK_SIZE,
        items_per_page=s.BLOG_POSTS_PER_PAGE,
        max_items_per_page=s.BLOG_MAX_POSTS_PER_PAGE,
        reading_speed_wpm=s.BLOG_READING_SPEED_WPM,
        excerpt_length=s.BLOG_EXCERPT_LENGTH,
        min_word_count=s.BLOG_MIN_WORD_COUNT,
        max_categories_per_item=s.BLOG_MAX_CATEGORIES_PER_POST,
        enable_hierarchy=False,
        enable_locking=s.BLOG_ENABLE_LOCKING,
        enable_revisions=s.BLOG_ENABLE_REVISIONS,
        enable_scheduling=s.BLOG_ENABLE_SCHEDULING,
        enable_password_protection=s.BLOG_ENABLE_PASSWORD_PROTECTION,
        allow_code_injection=False,
        auto_register_system_pages=False,
        base_path=s.BLOG_BASE_PATH,
    )
