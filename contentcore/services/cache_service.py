# contentcore/services/cache_service.py
# Cache provider (in-memory TTL) + política de invalidación por namespace
from __future__ import annotations

import fnmatch
import logging
import threading
import time
from typing import Any, Callable, Iterable, Optional, Protocol, Union

from sqlalchemy import event
from sqlalchemy.orm import Session

from contentcore.services.text import unique_preserving


class CacheProvider(Protocol):
    def get(self, key: str) -> Any: ...
    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...
    def delete(self, key: str) -> None: ...
    def flush(self, pattern: str) -> None: ...


class MemoryCache:
    """Thread-safe per-process TTL cache. `flush` takes a glob (`pages:list:*`)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any:
        now = self._clock()
        with self._lock:
            v = self._store.get(key)
            if v is None:
                return None
            # TTL expired → evict
            if v[0] <= now:
                self._store.pop(key, None)
                return None
            return v[1]

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        exp = self._clock() + max(0, int(ttl_seconds))
        with self._lock:
            self._store[key] = (exp, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def flush(self, pattern: str) -> None:
        with self._lock:
            for k in [k for k in self._store if fnmatch.fnmatchcase(k, pattern)]:
                self._store.pop(k, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store)


class NullCache:
    """Always miss."""

    def get(self, key: str) -> Any:
        return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def flush(self, pattern: str) -> None:
        return None


class CacheKeys:
    AGGREGATES = ("stats", "tree", "system", "home", "featured", "pinned", "feed", "sitemap", "categories")

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def by_id(self, item_id: int) -> str:
        return f"{self.prefix}:item:id:{item_id}"

    def by_slug(self, slug: str) -> str:
        return f"{self.prefix}:item:slug:{slug}"

    def listing(self, opts_hash: str) -> str:
        return f"{self.prefix}:list:{opts_hash}"

    def children(self, item_id: int) -> str:
        return f"{self.prefix}:children:{item_id}"

    def ancestors(self, item_id: int) -> str:
        return f"{self.prefix}:ancestors:{item_id}"

    def adjacent(self, item_id: int) -> str:
        return f"{self.prefix}:adjacent:{item_id}"

    def aggregate(self, name: str) -> str:
        return f"{self.prefix}:{name}"


# TTLs en segundos
CACHE_TTL = {
    "item": 300,
    "list": 120,
    "tree": 600,
    "system": 600,
    "stats": 300,
    "children": 300,
    "ancestors": 600,
    "featured": 300,
    "pinned": 300,
    "feed": 600,
    "sitemap": 600,
    "categories": 600,
    "adjacent": 600,
}

Notifier = Union[Callable[[list[str]], Any], Any]

# session.info: avisos de revalidación que esperan al commit
PENDING_KEY = "contentcore.pending_revalidation"


class CacheInvalidationPolicy:
    """
    After every mutation: drop item keys, flush listing/children/ancestor buckets,
    drop aggregates, then notify the re-render hook once with the affected paths.

    With a `session` the notification waits for that session's commit (and the
    keys are purged again then, in case a reader re-cached pre-commit state);
    a rollback discards it. Cache and notifier failures are logged and swallowed.
    """

    def __init__(
        self,
        prefix: str,
        cache: Optional[CacheProvider] = None,
        notifier: Optional[Notifier] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.keys = CacheKeys(prefix)
        self.cache: CacheProvider = cache if cache is not None else NullCache()
        self.notifier = notifier
        self.log = logger or logging.getLogger(__name__)

    def _safe(self, op: str, fn, *args) -> None:
        try:
            fn(*args)
        except Exception as exc:  # noqa: BLE001 - el cache es best-effort
            self.log.warning("Cache %s failed for %s: %s", op, args[0] if args else "", exc)

    def purge(self, ids: Iterable[int] = (), slugs: Iterable[Optional[str]] = ()) -> None:
        for item_id in ids:
            self._safe("delete", self.cache.delete, self.keys.by_id(item_id))
            self._safe("delete", self.cache.delete, self.keys.children(item_id))
        for slug in slugs:
            if slug is not None:
                self._safe("delete", self.cache.delete, self.keys.by_slug(slug))

        # Los filtros de listado son combinatorios: flush del namespace completo
        for bucket in ("list", "children", "ancestors", "adjacent"):
            self._safe("flush", self.cache.flush, f"{self.keys.prefix}:{bucket}:*")
        for name in CacheKeys.AGGREGATES:
            self._safe("delete", self.cache.delete, self.keys.aggregate(name))

    def invalidate(
        self,
        *,
        ids: Iterable[int] = (),
        slugs: Iterable[Optional[str]] = (),
        paths: Iterable[Optional[str]] = (),
        session: Optional[Session] = None,
    ) -> list[str]:
        ids = list(ids)
        slugs = [s for s in slugs if s is not None]
        self.purge(ids, slugs)

        targets = unique_preserving(p for p in paths if p)
        if session is None:
            self.revalidate(targets)
        else:
            session.info.setdefault(PENDING_KEY, []).append((self, ids, slugs, targets))
        return targets

    def flush_namespace(self) -> None:
        """Drop every key of this prefix (used when the affected ids are unknown)."""
        self._safe("flush", self.cache.flush, f"{self.keys.prefix}:*")

    def revalidate(self, paths: list[str]) -> None:
        if not paths or self.notifier is None:
            return
        notify = getattr(self.notifier, "notify", self.notifier)
        try:
            notify(paths)
        except Exception as exc:  # noqa: BLE001 - revalidación best-effort
            self.log.warning("Revalidation failed for %d path(s): %s", len(paths), exc)


@event.listens_for(Session, "after_commit")
def _revalidate_after_commit(session: Session) -> None:
    # after_commit también se dispara al liberar un SAVEPOINT
    if session.in_nested_transaction():
        return
    pending = session.info.pop(PENDING_KEY, None)
    if not pending:
        return

    merged: dict[int, tuple[CacheInvalidationPolicy, list, list, list]] = {}
    for policy, ids, slugs, paths in pending:
        entry = merged.setdefault(id(policy), (policy, [], [], []))
        entry[1].extend(ids)
        entry[2].extend(slugs)
        entry[3].extend(paths)
    # Un solo aviso por engine y commit
    for policy, ids, slugs, paths in merged.values():
        policy.purge(unique_preserving(ids), unique_preserving(slugs))
        policy.revalidate(unique_preserving(paths))


@event.listens_for(Session, "after_transaction_end")
def _discard_uncommitted(session: Session, transaction) -> None:
    # Fin de la transacción externa sin commit (rollback/close): nada que avisar
    if transaction.parent is None:
        session.info.pop(PENDING_KEY, None)
