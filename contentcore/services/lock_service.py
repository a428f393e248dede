# contentcore/services/lock_service.py
# Lease de edición embebido en la fila (is_locked / locked_by / locked_at)
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from contentcore.core.errors import LockedError, NotLockOwnerError

log = logging.getLogger(__name__)


def lock_expires_at(item, timeout_minutes: int) -> Optional[datetime]:
    if not item.is_locked or item.locked_at is None:
        return None
    return item.locked_at + timedelta(minutes=timeout_minutes)


def lock_info(item, *, timeout_minutes: int, now: datetime) -> dict:
    expires = lock_expires_at(item, timeout_minutes)
    return {
        "item_id": item.id,
        "is_locked": bool(item.is_locked),
        "locked_by": item.locked_by,
        "locked_at": item.locked_at,
        "expires_at": expires,
        "is_expired": bool(expires is not None and expires < now),
    }


class LockManager:
    def __init__(self, model) -> None:
        self.model = model

    def acquire(self, db: Session, item, holder: int, *, timeout_minutes: int, now: datetime) -> dict:
        """
        Free item or same holder: granted (re-entry refreshes locked_at).
        Other holder: granted only once their lease is older than the timeout.
        """
        if item.is_locked and item.locked_by != holder:
            expires = lock_expires_at(item, timeout_minutes)
            # vigente hasta superar el timeout
            if expires is not None and expires >= now:
                raise LockedError(
                    f"Item is locked by user {item.locked_by}",
                    locked_by=item.locked_by,
                    locked_until=expires.isoformat(),
                )
            log.info("Stale lock on %s #%s taken over by %s (was %s)",
                     self.model.__tablename__, item.id, holder, item.locked_by)

        item.is_locked = True
        item.locked_by = holder
        item.locked_at = now
        db.flush()
        return lock_info(item, timeout_minutes=timeout_minutes, now=now)

    def release(
        self,
        db: Session,
        item,
        holder: Optional[int],
        *,
        force: bool = False,
        timeout_minutes: int,
        now: datetime,
    ) -> dict:
        if item.is_locked and not force and item.locked_by != holder:
            raise NotLockOwnerError(
                "You do not hold the lock on this item", locked_by=item.locked_by
            )
        item.is_locked = False
        item.locked_by = None
        item.locked_at = None
        db.flush()
        return lock_info(item, timeout_minutes=timeout_minutes, now=now)

    def assert_can_write(self, item, actor: Optional[int], *, timeout_minutes: int) -> None:
        """
        A lock held by someone else blocks writes even once expired: the writer has
        to take the lease over with acquire() first. An anonymous actor (None) is
        never the holder, so it is rejected like anyone else.
        """
        if not item.is_locked or (actor is not None and item.locked_by == actor):
            return
        expires = lock_expires_at(item, timeout_minutes)
        raise LockedError(
            f"Item is locked by user {item.locked_by}",
            locked_by=item.locked_by,
            locked_until=expires.isoformat() if expires else None,
        )

    def sweep_expired(self, db: Session, *, timeout_minutes: int, now: datetime) -> int:
        cutoff = now - timedelta(minutes=timeout_minutes)
        res = db.execute(
            update(self.model)
            .where(self.model.is_locked.is_(True), self.model.locked_at < cutoff)
            .values(is_locked=False, locked_by=None, locked_at=None)
            .execution_options(synchronize_session="fetch")
        )
        count = int(res.rowcount or 0)
        if count:
            log.info("Released %d stale lock(s) on %s", count, self.model.__tablename__)
        return count
