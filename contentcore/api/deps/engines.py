# contentcore/api/deps/engines.py
# Un engine por tipo de contenido y por proceso: cache + notifier + config provider
from __future__ import annotations

import logging
import threading
from typing import Optional

from contentcore.core.runtime_config import (
    ConfigProvider,
    blog_config_from_settings,
    pages_config_from_settings,
)
from contentcore.core.settings import Settings, settings
from contentcore.services.blog_service import PostEngine
from contentcore.services.cache_service import CacheProvider, MemoryCache, NullCache
from contentcore.services.page_service import PageEngine
from contentcore.services.revalidation_service import build_revalidator

_lock = threading.Lock()
_page_engine: Optional[PageEngine] = None
_post_engine: Optional[PostEngine] = None


def _cache(s: Settings) -> CacheProvider:
    return MemoryCache() if s.CACHE_ENABLED else NullCache()


def build_page_engine(s: Settings = settings) -> PageEngine:
    return PageEngine(
        config=ConfigProvider(pages_config_from_settings(s)),
        cache=_cache(s),
        notifier=build_revalidator(s),
        logger=logging.getLogger("contentcore.pages"),
    )


def build_post_engine(s: Settings = settings) -> PostEngine:
    return PostEngine(
        config=ConfigProvider(blog_config_from_settings(s)),
        cache=_cache(s),
        notifier=build_revalidator(s),
        logger=logging.getLogger("contentcore.blog"),
    )


def get_page_engine() -> PageEngine:
    global _page_engine
    if _page_engine is None:
        with _lock:
            if _page_engine is None:
                _page_engine = build_page_engine()
    return _page_engine


def get_post_engine() -> PostEngine:
    global _post_engine
    if _post_engine is None:
        with _lock:
            if _post_engine is None:
                _post_engine = build_post_engine()
    return _post_engine


def get_settings() -> Settings:
    return settings
