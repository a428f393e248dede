# contentcore/services/versioning_service.py
from __future__ import annotations

import difflib
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from contentcore.core.errors import ContentValidationError, NotFoundError


class RevisionStore:
    """
    Snapshots of an item's text fields in `<kind>_revisions`.
    No hace commit; el caller debe hacer db.commit().
    """

    def __init__(self, model) -> None:
        self.model = model
        self._has_template = hasattr(model, "template")

    def _ordered(self, item_id: int):
        return select(self.model).where(self.model.item_id == item_id)

    def count(self, db: Session, item_id: int) -> int:
        return int(
            db.scalar(select(func.count()).select_from(self.model).where(self.model.item_id == item_id)) or 0
        )

    def prune(self, db: Session, item_id: int, keep: int) -> int:
        """Delete the oldest rows so that at most `keep` remain. keep<=0 means unlimited."""
        if keep <= 0:
            return 0
        total = self.count(db, item_id)
        excess = total - keep
        if excess <= 0:
            return 0
        oldest = db.scalars(
            select(self.model.id)
            .where(self.model.item_id == item_id)
            .order_by(self.model.created_at.asc(), self.model.id.asc())
            .limit(excess)
        ).all()
        db.execute(delete(self.model).where(self.model.id.in_(oldest)))
        return len(oldest)

    def snapshot(
        self,
        db: Session,
        item,
        *,
        revision_number: int,
        author_id: Optional[int],
        note: Optional[str] = None,
        max_revisions: int = 0,
        now: Optional[datetime] = None,
    ):
        """
        Append one immutable row with the item's current title/content/excerpt.
        Oldest rows are evicted first so the retention limit holds after the insert
        and the new row is never the one evicted.
        """
        if max_revisions > 0:
            self.prune(db, item.id, max_revisions - 1)

        snap = self.model(
            item_id=item.id,
            title=item.title,
            content=item.content or "",
            excerpt=item.excerpt,
            revision_number=revision_number,
            change_note=note,
            created_by=author_id,
        )
        if self._has_template:
            snap.template = getattr(item, "template", None)
        if now is not None:
            snap.created_at = now
        db.add(snap)
        db.flush()
        return snap

    def list(self, db: Session, item_id: int) -> list:
        """Newest first."""
        return list(
            db.scalars(
                self._ordered(item_id).order_by(self.model.created_at.desc(), self.model.id.desc())
            ).all()
        )

    def get(self, db: Session, item_id: int, revision_id: int):
        rev = db.get(self.model, revision_id)
        if rev is None or rev.item_id != item_id:
            raise NotFoundError("Revision not found", code="REVISION_NOT_FOUND", revision_id=revision_id)
        return rev

    def delete_all(self, db: Session, item_id: int) -> int:
        res = db.execute(delete(self.model).where(self.model.item_id == item_id))
        return int(res.rowcount or 0)

    def diff(self, db: Session, item_id: int, from_id: int, to_id: int) -> dict:
        a = self.get(db, item_id, from_id)
        b = self.get(db, item_id, to_id)
        if a.item_id != b.item_id:
            raise ContentValidationError("Revisions belong to different items", code="REVISION_MISMATCH")

        changes = []
        for field in ("title", "content", "excerpt"):
            before = getattr(a, field) or ""
            after = getattr(b, field) or ""
            if before != after:
                changes.append({"field": field, "before": before, "after": after})

        unified = "\n".join(
            difflib.unified_diff(
                (a.content or "").splitlines(),
                (b.content or "").splitlines(),
                fromfile=f"revision-{a.revision_number}",
                tofile=f"revision-{b.revision_number}",
                lineterm="",
            )
        )
        changed = {c["field"] for c in changes}
        return {
            "from_revision": a.revision_number,
            "to_revision": b.revision_number,
            "title_changed": "title" in changed,
            "content_changed": "content" in changed,
            "excerpt_changed": "excerpt" in changed,
            "changes": changes,
            "content_diff": unified,
        }
