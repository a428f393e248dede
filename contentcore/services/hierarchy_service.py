# contentcore/services/hierarchy_service.py
# Árbol de páginas: parent_id + depth + path materializado
from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from contentcore.core.errors import (
    CircularReferenceError,
    ContentValidationError,
    MaxDepthExceededError,
    NotFoundError,
)
from contentcore.services.text import build_page_path

log = logging.getLogger(__name__)


class HierarchyManager:
    def __init__(self, model) -> None:
        self.model = model

    # ---------- lecturas ----------
    def children(self, db: Session, parent_id: int, *, include_deleted: bool = False) -> list:
        stmt = select(self.model).where(self.model.parent_id == parent_id)
        if not include_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return list(db.scalars(stmt.order_by(self.model.sort_order.asc(), self.model.id.asc())).all())

    def ancestors(self, db: Session, item) -> list:
        """Root first, direct parent last. Guards against a corrupt cycle in stored data."""
        chain = []
        seen = {item.id}
        parent_id = item.parent_id
        while parent_id is not None and parent_id not in seen:
            parent = db.get(self.model, parent_id)
            if parent is None:
                break
            seen.add(parent.id)
            chain.append(parent)
            parent_id = parent.parent_id
        chain.reverse()
        return chain

    def descendants(self, db: Session, item_id: int, *, include_deleted: bool = False) -> list:
        """Breadth-first, every node reachable downward through parent_id."""
        out = []
        seen = {item_id}
        queue = deque([item_id])
        while queue:
            current = queue.popleft()
            for child in self.children(db, current, include_deleted=include_deleted):
                if child.id in seen:
                    continue
                seen.add(child.id)
                out.append(child)
                queue.append(child.id)
        return out

    def siblings(self, db: Session, item) -> list:
        stmt = select(self.model).where(
            self.model.id != item.id,
            self.model.deleted_at.is_(None),
        )
        if item.parent_id is None:
            stmt = stmt.where(self.model.parent_id.is_(None))
        else:
            stmt = stmt.where(self.model.parent_id == item.parent_id)
        return list(db.scalars(stmt.order_by(self.model.sort_order.asc(), self.model.id.asc())).all())

    # ---------- validación ----------
    def resolve_parent(self, db: Session, item, parent_id: Optional[int], *, max_depth: int):
        """
        Returns the parent row (or None for root) after checking:
        self-parenting, existence, cycles and the depth limit for the whole subtree.
        `item` may be None for a row not yet inserted.
        """
        if parent_id is None:
            return None
        item_id = getattr(item, "id", None)
        if item_id is not None and parent_id == item_id:
            raise CircularReferenceError("An item cannot be its own parent", code="SELF_PARENT")

        parent = db.get(self.model, parent_id)
        if parent is None:
            raise NotFoundError("Parent not found", code="PARENT_NOT_FOUND", parent_id=parent_id)
        if parent.deleted_at is not None:
            raise ContentValidationError("Parent is deleted", code="PARENT_DELETED", parent_id=parent_id)

        if item_id is not None:
            if any(a.id == item_id for a in self.ancestors(db, parent)):
                raise CircularReferenceError(
                    "Circular parent reference detected", code="CIRCULAR_REFERENCE", parent_id=parent_id
                )

        new_depth = parent.depth + 1
        subtree_height = 0
        if item_id is not None:
            for d in self.descendants(db, item_id, include_deleted=True):
                subtree_height = max(subtree_height, d.depth - item.depth)
        if new_depth + subtree_height > max_depth:
            raise MaxDepthExceededError(
                f"Maximum nesting depth of {max_depth} exceeded",
                depth=new_depth + subtree_height,
                max_depth=max_depth,
            )
        return parent

    # ---------- escritura ----------
    def place(self, item, parent, *, base: str = "") -> None:
        """Set parent_id/depth/path of one row from its (already validated) parent."""
        item.parent_id = parent.id if parent is not None else None
        item.depth = parent.depth + 1 if parent is not None else 0
        item.path = build_page_path(item.slug, parent.path if parent is not None else None, base)

    def set_parent(
        self, db: Session, item, parent_id: Optional[int], *, max_depth: int, base: str = ""
    ) -> list[str]:
        """Reparent + cascade. Returns every path that changed (old and new)."""
        parent = self.resolve_parent(db, item, parent_id, max_depth=max_depth)
        old_path = item.path
        self.place(item, parent, base=base)
        db.flush()
        changed = [old_path, item.path] if old_path != item.path else []
        changed.extend(self.rebuild_descendants(db, item, base=base))
        return changed

    def rebuild_descendants(self, db: Session, root, *, base: str = "") -> list[str]:
        """
        Worklist rebuild of depth/path under `root`, soft-deleted rows included so a
        later restore never brings back a stale path. Returns old+new changed paths.
        """
        changed: list[str] = []
        queue = deque([root])
        seen = {root.id}
        while queue:
            parent = queue.popleft()
            for child in self.children(db, parent.id, include_deleted=True):
                if child.id in seen:
                    continue
                seen.add(child.id)
                old_path = child.path
                child.depth = parent.depth + 1
                child.path = build_page_path(child.slug, parent.path, base)
                if old_path != child.path:
                    changed.extend([old_path, child.path])
                queue.append(child)
        db.flush()
        if changed:
            log.debug("Rebuilt %d descendant path(s) under #%s", len(changed) // 2, root.id)
        return changed

    def build_tree(self, rows: list) -> list[dict]:
        nodes = {
            r.id: {
                "id": r.id,
                "title": r.title,
                "slug": r.slug,
                "path": r.path,
                "depth": r.depth,
                "status": r.status,
                "sort_order": r.sort_order,
                "is_system": r.is_system,
                "children": [],
            }
            for r in rows
        }
        roots = []
        for r in rows:
            node = nodes[r.id]
            if r.parent_id is not None and r.parent_id in nodes:
                nodes[r.parent_id]["children"].append(node)
            else:
                roots.append(node)
        return roots
