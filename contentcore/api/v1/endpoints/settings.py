# contentcore/api/v1/endpoints/settings.py
# Config del engine en caliente (el siguiente request ya ve el snapshot nuevo)
from __future__ import annotations

from typing import Any, Dict, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from contentcore.api.deps.auth import get_current_user_id
from contentcore.api.deps.engines import get_page_engine, get_post_engine
from contentcore.schemas.settings import EngineConfigPatch
from contentcore.services.blog_service import PostEngine
from contentcore.services.lifecycle_service import ContentEngine
from contentcore.services.page_service import PageEngine

router = APIRouter()

EngineKind = Literal["pages", "blog"]


def _engine_for(
    kind: EngineKind,
    pages: PageEngine = Depends(get_page_engine),
    posts: PostEngine = Depends(get_post_engine),
) -> ContentEngine:
    return pages if kind == "pages" else posts


@router.get("/{kind}")
def get_engine_settings(engine: ContentEngine = Depends(_engine_for)) -> Dict[str, Any]:
    return engine.config.snapshot().model_dump()


@router.patch("/{kind}")
def patch_engine_settings(
    patch: EngineConfigPatch,
    user_id: int = Depends(get_current_user_id),
    engine: ContentEngine = Depends(_engine_for),
) -> Dict[str, Any]:
    changes = patch.changes()
    if not changes:
        return engine.config.snapshot().model_dump()
    try:
        cfg = engine.config.update(**changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    engine.log.info("Engine settings updated by user %s: %s", user_id, sorted(changes))
    return cfg.model_dump()
