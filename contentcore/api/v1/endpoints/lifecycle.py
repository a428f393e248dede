# =============================================================================
# Rutas comunes de ciclo de vida (pages y posts)
# contentcore/api/v1/endpoints/lifecycle.py
#
# Sin `from __future__ import annotations`: las firmas usan los schemas que
# llegan como argumentos y FastAPI necesita los objetos reales.
# =============================================================================
from typing import Any, Callable, List, Type

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from contentcore.api.deps.auth import get_current_user_id
from contentcore.db.session import get_db
from contentcore.schemas.content import (
    BulkDeleteRequest,
    BulkIds,
    BulkResult,
    BulkScheduleRequest,
    BulkStatusRequest,
    ContentStats,
    LockInfo,
    RevisionDiff,
    ScheduledItem,
    ScheduleRequest,
    SitemapEntry,
)
from contentcore.schemas.pages import PasswordCheck
from contentcore.services.lifecycle_service import ContentEngine


def commit_and_refresh(db: Session, item):
    db.commit()
    db.refresh(item)
    return item


def add_lifecycle_routes(
    router: APIRouter,
    *,
    engine_dep: Callable[[], ContentEngine],
    out_schema: Type[BaseModel],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    revision_schema: Type[BaseModel],
) -> APIRouter:
    """
    Registers create/read/update/delete, status shortcuts, locks, revisions and
    bulk routes. Kind-specific routes with static segments must be added to
    `router` before this call so they win over `/{item_id}`.
    """

    # ------------------------------------------------------------------ #
    # Colección
    # ------------------------------------------------------------------ #
    @router.post("", response_model=out_schema, status_code=201)
    def create_endpoint(
        payload: create_schema,  # type: ignore[valid-type]
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        item = engine.create(db, payload, author_id=user_id)
        return commit_and_refresh(db, item)

    @router.get("/stats", response_model=ContentStats)
    def stats_endpoint(db: Session = Depends(get_db), engine: ContentEngine = Depends(engine_dep)):
        return engine.stats(db)

    @router.get("/scheduled", response_model=List[ScheduledItem])
    def scheduled_endpoint(db: Session = Depends(get_db), engine: ContentEngine = Depends(engine_dep)):
        return engine.scheduled(db)

    @router.get("/sitemap", response_model=List[SitemapEntry])
    def sitemap_endpoint(db: Session = Depends(get_db), engine: ContentEngine = Depends(engine_dep)):
        return engine.sitemap_paths(db)

    @router.get("/slug/{slug}", response_model=out_schema)
    def get_by_slug_endpoint(
        slug: str, db: Session = Depends(get_db), engine: ContentEngine = Depends(engine_dep)
    ):
        return engine.get_by_slug(db, slug)

    # ------------------------------------------------------------------ #
    # Bulk
    # ------------------------------------------------------------------ #
    @router.post("/bulk/status", response_model=BulkResult)
    def bulk_status_endpoint(
        payload: BulkStatusRequest,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        result = engine.bulk_update_status(
            db, payload.ids, payload.status, actor_id=user_id, scheduled_for=payload.scheduled_for
        )
        db.commit()
        return result

    @router.post("/bulk/delete", response_model=BulkResult)
    def bulk_delete_endpoint(
        payload: BulkDeleteRequest,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        result = engine.bulk_delete(db, payload.ids, permanent=payload.permanent, actor_id=user_id)
        db.commit()
        return result

    @router.post("/bulk/schedule", response_model=BulkResult)
    def bulk_schedule_endpoint(
        payload: BulkScheduleRequest,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        result = engine.bulk_schedule(db, payload.ids, payload.scheduled_for, actor_id=user_id)
        db.commit()
        return result

    @router.post("/bulk/restore", response_model=BulkResult)
    def bulk_restore_endpoint(
        payload: BulkIds,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        result = engine.bulk_restore(db, payload.ids, actor_id=user_id)
        db.commit()
        return result

    # ------------------------------------------------------------------ #
    # Item
    # ------------------------------------------------------------------ #
    @router.get("/{item_id}", response_model=out_schema)
    def get_endpoint(
        item_id: int,
        include_deleted: bool = Query(False),
        db: Session = Depends(get_db),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return engine.get(db, item_id, include_deleted=include_deleted)

    @router.patch("/{item_id}", response_model=out_schema)
    def update_endpoint(
        item_id: int,
        payload: update_schema,  # type: ignore[valid-type]
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        item = engine.update(db, item_id, payload, actor_id=user_id)
        return commit_and_refresh(db, item)

    @router.delete("/{item_id}", status_code=204)
    def delete_endpoint(
        item_id: int,
        permanent: bool = Query(False),
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        if permanent:
            engine.hard_delete(db, item_id, actor_id=user_id)
        else:
            engine.soft_delete(db, item_id, actor_id=user_id)
        db.commit()
        return Response(status_code=204)

    @router.post("/{item_id}/restore", response_model=out_schema)
    def restore_endpoint(
        item_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return commit_and_refresh(db, engine.restore(db, item_id, actor_id=user_id))

    # ---------- estado ----------
    @router.post("/{item_id}/publish", response_model=out_schema)
    def publish_endpoint(
        item_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return commit_and_refresh(db, engine.publish(db, item_id, actor_id=user_id))

    @router.post("/{item_id}/unpublish", response_model=out_schema)
    def unpublish_endpoint(
        item_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return commit_and_refresh(db, engine.unpublish(db, item_id, actor_id=user_id))

    @router.post("/{item_id}/archive", response_model=out_schema)
    def archive_endpoint(
        item_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return commit_and_refresh(db, engine.archive(db, item_id, actor_id=user_id))

    @router.post("/{item_id}/schedule", response_model=out_schema)
    def schedule_endpoint(
        item_id: int,
        payload: ScheduleRequest,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return commit_and_refresh(db, engine.schedule(db, item_id, payload.scheduled_for, actor_id=user_id))

    @router.post("/{item_id}/unschedule", response_model=out_schema)
    def unschedule_endpoint(
        item_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return commit_and_refresh(db, engine.unschedule(db, item_id, actor_id=user_id))

    # ---------- locks ----------
    @router.get("/{item_id}/lock", response_model=LockInfo)
    def lock_status_endpoint(
        item_id: int, db: Session = Depends(get_db), engine: ContentEngine = Depends(engine_dep)
    ):
        return engine.lock_status(db, item_id)

    @router.post("/{item_id}/lock", response_model=LockInfo)
    def acquire_lock_endpoint(
        item_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        info = engine.acquire_lock(db, item_id, user_id)
        db.commit()
        return info

    @router.delete("/{item_id}/lock", response_model=LockInfo)
    def release_lock_endpoint(
        item_id: int,
        force: bool = Query(False),
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        info = engine.release_lock(db, item_id, user_id, force=force)
        db.commit()
        return info

    # ---------- revisiones ----------
    @router.get("/{item_id}/revisions", response_model=List[revision_schema])  # type: ignore[valid-type]
    def revisions_endpoint(
        item_id: int, db: Session = Depends(get_db), engine: ContentEngine = Depends(engine_dep)
    ):
        return engine.revisions(db, item_id)

    @router.get("/{item_id}/revisions/diff", response_model=RevisionDiff)
    def revision_diff_endpoint(
        item_id: int,
        from_id: int = Query(...),
        to_id: int = Query(...),
        db: Session = Depends(get_db),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return engine.diff_revisions(db, item_id, from_id, to_id)

    @router.get("/{item_id}/revisions/{revision_id}", response_model=revision_schema)
    def revision_endpoint(
        item_id: int,
        revision_id: int,
        db: Session = Depends(get_db),
        engine: ContentEngine = Depends(engine_dep),
    ):
        return engine.revision(db, item_id, revision_id)

    @router.post("/{item_id}/revisions/{revision_id}/restore", response_model=out_schema)
    def restore_revision_endpoint(
        item_id: int,
        revision_id: int,
        db: Session = Depends(get_db),
        user_id: int = Depends(get_current_user_id),
        engine: ContentEngine = Depends(engine_dep),
    ):
        item = engine.restore_revision(db, item_id, revision_id, actor_id=user_id)
        return commit_and_refresh(db, item)

    # ---------- password ----------
    @router.post("/{item_id}/verify-password")
    def verify_password_endpoint(
        item_id: int,
        payload: PasswordCheck,
        db: Session = Depends(get_db),
        engine: ContentEngine = Depends(engine_dep),
    ) -> Any:
        return {"valid": engine.verify_password(db, item_id, payload.password)}

    return router
