# contentcore/services/slug_service.py
# Asignación de slugs únicos: base normalizada + sufijo -2, -3, ... y fallback con timestamp
from __future__ import annotations

import logging
import secrets
import time
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from contentcore.core.errors import ConflictError
from contentcore.services.text import generate_slug

log = logging.getLogger(__name__)

SLUG_COUNTER_MAX = 50
SLUG_MAX_LENGTH = 200

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


class SlugAllocator:
    """
    Resolves slug collisions against one table.

    - Uniqueness is checked across every row of the table, soft-deleted included.
    - Reserved slugs count as taken unless `allow_reserved=True` (system rows).
    - The unique constraint stays the final arbiter: `insert()` / `assign()` run
      inside a SAVEPOINT and turn an IntegrityError into SLUG_CONFLICT.
    """

    def __init__(
        self,
        model,
        *,
        reserved: Iterable[str] = (),
        fallback: str = "item",
        counter_max: int = SLUG_COUNTER_MAX,
        max_length: int = SLUG_MAX_LENGTH,
    ) -> None:
        self.model = model
        self.reserved = frozenset(s for s in reserved if s)
        self.fallback = fallback
        self.counter_max = counter_max
        self.max_length = max_length

    def is_taken(self, db: Session, slug: str, *, exclude_id: Optional[int] = None) -> bool:
        stmt = select(self.model.id).where(self.model.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        return db.scalar(stmt.limit(1)) is not None

    def _blocked(self, db: Session, slug: str, exclude_id: Optional[int], allow_reserved: bool) -> bool:
        if not allow_reserved and slug in self.reserved:
            return True
        return self.is_taken(db, slug, exclude_id=exclude_id)

    def allocate(
        self,
        db: Session,
        text: str,
        *,
        exclude_id: Optional[int] = None,
        allow_reserved: bool = False,
    ) -> str:
        # Deja sitio para "-NN" o el sufijo de fallback
        base = generate_slug(text, max_length=self.max_length - 16) or self.fallback

        if not self._blocked(db, base, exclude_id, allow_reserved):
            return base

        for counter in range(2, self.counter_max + 1):
            candidate = f"{base}-{counter}"
            if not self._blocked(db, candidate, exclude_id, allow_reserved):
                return candidate

        candidate = f"{base}-{_base36(int(time.time() * 1000))}{secrets.token_hex(2)}"
        log.warning("Slug counter exhausted for %r; using fallback %s", base, candidate)
        return candidate

    def insert(self, db: Session, item) -> None:
        """Add + flush a new row inside a SAVEPOINT."""
        try:
            with db.begin_nested():
                db.add(item)
                db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Slug '{item.slug}' is already in use", code="SLUG_CONFLICT", slug=item.slug
            ) from exc

    def assign(self, db: Session, item, slug: str) -> None:
        """Change the slug of a persisted row inside a SAVEPOINT."""
        db.flush()
        try:
            with db.begin_nested():
                item.slug = slug
                db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Slug '{slug}' is already in use", code="SLUG_CONFLICT", slug=slug
            ) from exc
