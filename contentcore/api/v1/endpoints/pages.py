# =============================================================================
# Pages Endpoints (CRUD, jerarquía, páginas de sistema, home, bulk)
# contentcore/api/v1/endpoints/pages.py
# =============================================================================
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from contentcore.api.deps.auth import get_current_user_id
from contentcore.api.deps.engines import get_page_engine
from contentcore.api.v1.endpoints.lifecycle import add_lifecycle_routes, commit_and_refresh
from contentcore.db.session import get_db
from contentcore.schemas.content import BulkResult, Paginated
from contentcore.schemas.pages import (
    BulkMoveRequest,
    BulkReorderRequest,
    BulkTemplateRequest,
    BulkVisibilityRequest,
    MoveRequest,
    PageCreate,
    PageOut,
    PageRevisionOut,
    PageTreeNode,
    PageUpdate,
    SystemPageRegistration,
)
from contentcore.services.page_service import PageEngine

router = APIRouter()


# ============================================================================ #
# Listado
# ============================================================================ #
@router.get("", response_model=Paginated[PageOut])
def list_pages_endpoint(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[str] = Query(None),
    author_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    include_deleted: bool = Query(False),
    sort_by: Optional[str] = Query(None),
    sort_order: Optional[str] = Query(None),
    parent_id: Optional[int] = Query(None),
    root_only: bool = Query(False),
    template: Optional[str] = Query(None),
    visibility: Optional[str] = Query(None),
    is_system: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    engine: PageEngine = Depends(get_page_engine),
):
    return engine.list(
        db,
        page=page,
        limit=limit,
        status=status,
        author_id=author_id,
        search=search,
        include_deleted=include_deleted,
        sort_by=sort_by,
        sort_order=sort_order,
        parent_id=parent_id,
        root_only=root_only or None,
        template=template,
        visibility=visibility,
        is_system=is_system,
    )


# ============================================================================ #
# Árbol / sistema / home (rutas estáticas antes de /{item_id})
# ============================================================================ #
@router.get("/tree", response_model=List[PageTreeNode])
def tree_endpoint(db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.tree(db)


@router.get("/roots", response_model=List[PageOut])
def roots_endpoint(db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.children(db, None)


@router.get("/system", response_model=List[PageOut])
def system_pages_endpoint(db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.system_pages(db)


@router.post("/system/bootstrap", response_model=List[SystemPageRegistration])
def bootstrap_system_pages_endpoint(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    regs = engine.bootstrap_system_pages(db, author_id=user_id)
    db.commit()
    return regs


@router.get("/system/{system_key}", response_model=PageOut)
def system_page_endpoint(
    system_key: str, db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)
):
    return engine.get_by_system_key(db, system_key.upper())


@router.get("/home", response_model=Optional[PageOut])
def home_page_endpoint(db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.home_page(db)


# ============================================================================ #
# Bulk propios de pages
# ============================================================================ #
@router.post("/bulk/move", response_model=BulkResult)
def bulk_move_endpoint(
    payload: BulkMoveRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    result = engine.bulk_move(db, payload.ids, payload.parent_id, actor_id=user_id)
    db.commit()
    return result


@router.post("/bulk/reorder", response_model=BulkResult)
def bulk_reorder_endpoint(
    payload: BulkReorderRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    result = engine.bulk_reorder(db, payload.items, actor_id=user_id)
    db.commit()
    return result


@router.post("/bulk/template", response_model=BulkResult)
def bulk_template_endpoint(
    payload: BulkTemplateRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    result = engine.bulk_set_template(db, payload.ids, payload.template, actor_id=user_id)
    db.commit()
    return result


@router.post("/bulk/visibility", response_model=BulkResult)
def bulk_visibility_endpoint(
    payload: BulkVisibilityRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    result = engine.bulk_set_visibility(db, payload.ids, payload.visibility, actor_id=user_id)
    db.commit()
    return result


# ============================================================================ #
# Jerarquía por página
# ============================================================================ #
@router.get("/{item_id}/ancestors", response_model=List[PageOut])
def ancestors_endpoint(item_id: int, db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.ancestors(db, item_id)


@router.get("/{item_id}/children", response_model=List[PageOut])
def children_endpoint(item_id: int, db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.children(db, item_id)


@router.get("/{item_id}/descendants", response_model=List[PageOut])
def descendants_endpoint(
    item_id: int, db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)
):
    return engine.descendants(db, item_id)


@router.get("/{item_id}/siblings", response_model=List[PageOut])
def siblings_endpoint(item_id: int, db: Session = Depends(get_db), engine: PageEngine = Depends(get_page_engine)):
    return engine.siblings(db, item_id)


@router.post("/{item_id}/move", response_model=PageOut)
def move_endpoint(
    item_id: int,
    payload: MoveRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    return commit_and_refresh(db, engine.move(db, item_id, payload.parent_id, actor_id=user_id))


@router.post("/{item_id}/home", response_model=PageOut)
def set_home_page_endpoint(
    item_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PageEngine = Depends(get_page_engine),
):
    return commit_and_refresh(db, engine.set_home_page(db, item_id, actor_id=user_id))


add_lifecycle_routes(
    router,
    engine_dep=get_page_engine,
    out_schema=PageOut,
    create_schema=PageCreate,
    update_schema=PageUpdate,
    revision_schema=PageRevisionOut,
)
