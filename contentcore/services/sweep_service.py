# contentcore/services/sweep_service.py
# Tareas periódicas (cron): publicar programados y liberar locks vencidos.
# Cada tarea hace su propio commit; un fallo no frena a las demás.
from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contentcore.core.errors import ContentError
from contentcore.services.blog_service import PostEngine
from contentcore.services.page_service import PageEngine

log = logging.getLogger(__name__)


def _run_task(db: Session, name: str, fn: Callable[[Session], Any]) -> dict[str, Any]:
    try:
        result = fn(db)
        db.commit()
    except (ContentError, SQLAlchemyError) as exc:
        db.rollback()
        log.error("Sweep task %s failed: %s", name, exc)
        return {"ok": False, "error": str(exc)}

    if hasattr(result, "model_dump"):
        result = result.model_dump()
    return {"ok": True, "result": result}


def run_sweeps(db: Session, pages: PageEngine, posts: PostEngine) -> dict[str, dict[str, Any]]:
    tasks: list[tuple[str, Callable[[Session], Any]]] = [
        ("publish_scheduled_pages", pages.process_scheduled),
        ("publish_scheduled_posts", posts.process_scheduled),
        ("release_stale_page_locks", pages.release_stale_locks),
        ("release_stale_post_locks", posts.release_stale_locks),
    ]
    results = {name: _run_task(db, name, fn) for name, fn in tasks}
    failed = [name for name, r in results.items() if not r["ok"]]
    if failed:
        log.warning("Sweeps finished with %d failure(s): %s", len(failed), ", ".join(failed))
    else:
        log.info("Sweeps finished OK")
    return results
