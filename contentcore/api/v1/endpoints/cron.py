# contentcore/api/v1/endpoints/cron.py
# Disparado por el scheduler externo (Heroku Scheduler, cron del sistema, ...)
from __future__ import annotations

import hmac
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from contentcore.api.deps.engines import get_page_engine, get_post_engine, get_settings
from contentcore.core.settings import Settings
from contentcore.db.session import get_db
from contentcore.services.blog_service import PostEngine
from contentcore.services.page_service import PageEngine
from contentcore.services.sweep_service import run_sweeps

router = APIRouter()


def require_cron_secret(
    authorization: Optional[str] = Header(None),
    s: Settings = Depends(get_settings),
) -> None:
    if not s.CRON_SECRET:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Cron is not configured")
    expected = f"Bearer {s.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization.strip(), expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron credentials")


@router.post("/run", dependencies=[Depends(require_cron_secret)])
def run_cron_endpoint(
    db: Session = Depends(get_db),
    pages: PageEngine = Depends(get_page_engine),
    posts: PostEngine = Depends(get_post_engine),
) -> Dict[str, Any]:
    results = run_sweeps(db, pages, posts)
    return {"ok": all(r["ok"] for r in results.values()), "tasks": results}
