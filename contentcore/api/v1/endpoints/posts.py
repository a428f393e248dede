# =============================================================================
# Blog Endpoints (posts, categorías, series, destacados/fijados, feed)
# contentcore/api/v1/endpoints/posts.py
# =============================================================================
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from contentcore.api.deps.auth import get_current_user_id
from contentcore.api.deps.engines import get_post_engine
from contentcore.api.v1.endpoints.lifecycle import add_lifecycle_routes, commit_and_refresh
from contentcore.db.session import get_db
from contentcore.schemas.blog import (
    AdjacentPosts,
    BulkCategoriesRequest,
    BulkFeatureRequest,
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    FeatureRequest,
    FeedItem,
    PinnedReorder,
    PinRequest,
    PostCreate,
    PostOut,
    PostUpdate,
    SeriesAddPost,
    SeriesCreate,
    SeriesOut,
    SeriesReorder,
    SeriesUpdate,
    SetCategoriesRequest,
)
from contentcore.schemas.content import BulkResult, Paginated, RevisionOut
from contentcore.services.blog_service import PostEngine

router = APIRouter()


@router.get("", response_model=Paginated[PostOut])
def list_posts_endpoint(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[str] = Query(None),
    author_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    include_deleted: bool = Query(False),
    sort_by: Optional[str] = Query(None),
    sort_order: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None),
    series_id: Optional[int] = Query(None),
    is_featured: Optional[bool] = Query(None),
    is_pinned: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    engine: PostEngine = Depends(get_post_engine),
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
        category_id=category_id,
        series_id=series_id,
        is_featured=is_featured,
        is_pinned=is_pinned,
    )


# ============================================================================ #
# Featured / pinned / feed
# ============================================================================ #
@router.get("/featured", response_model=List[PostOut])
def featured_endpoint(
    limit: int = Query(10, ge=1, le=10),
    db: Session = Depends(get_db),
    engine: PostEngine = Depends(get_post_engine),
):
    return engine.featured(db, limit=limit)


@router.get("/pinned", response_model=List[PostOut])
def pinned_endpoint(db: Session = Depends(get_db), engine: PostEngine = Depends(get_post_engine)):
    return engine.pinned(db)


@router.put("/pinned/order", response_model=List[PostOut])
def reorder_pinned_endpoint(
    payload: PinnedReorder,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    engine.reorder_pinned(db, payload.post_ids, actor_id=user_id)
    db.commit()
    return engine.pinned(db)


@router.get("/feed", response_model=List[FeedItem])
def feed_endpoint(
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db),
    engine: PostEngine = Depends(get_post_engine),
):
    return engine.feed(db, limit=limit)


# ============================================================================ #
# Categorías
# ============================================================================ #
@router.get("/categories", response_model=List[CategoryOut])
def list_categories_endpoint(db: Session = Depends(get_db), engine: PostEngine = Depends(get_post_engine)):
    return engine.categories(db)


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category_endpoint(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    return commit_and_refresh(db, engine.create_category(db, payload))


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category_endpoint(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    return commit_and_refresh(db, engine.update_category(db, category_id, payload))


@router.delete("/categories/{category_id}", status_code=204)
def delete_category_endpoint(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    engine.delete_category(db, category_id)
    db.commit()
    return Response(status_code=204)


# ============================================================================ #
# Series
# ============================================================================ #
@router.get("/series", response_model=List[SeriesOut])
def list_series_endpoint(db: Session = Depends(get_db), engine: PostEngine = Depends(get_post_engine)):
    return engine.list_series(db)


@router.post("/series", response_model=SeriesOut, status_code=201)
def create_series_endpoint(
    payload: SeriesCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    series = engine.create_series(db, payload)
    db.commit()
    return engine.get_series(db, series.id)


@router.get("/series/{series_id}", response_model=SeriesOut)
def get_series_endpoint(series_id: int, db: Session = Depends(get_db), engine: PostEngine = Depends(get_post_engine)):
    return engine.get_series(db, series_id)


@router.patch("/series/{series_id}", response_model=SeriesOut)
def update_series_endpoint(
    series_id: int,
    payload: SeriesUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    engine.update_series(db, series_id, payload)
    db.commit()
    return engine.get_series(db, series_id)


@router.delete("/series/{series_id}", status_code=204)
def delete_series_endpoint(
    series_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    engine.delete_series(db, series_id)
    db.commit()
    return Response(status_code=204)


@router.post("/series/{series_id}/posts", response_model=SeriesOut)
def add_post_to_series_endpoint(
    series_id: int,
    payload: SeriesAddPost,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    engine.add_post_to_series(db, series_id, payload.post_id, order=payload.order, actor_id=user_id)
    db.commit()
    return engine.get_series(db, series_id)


@router.put("/series/{series_id}/order", response_model=SeriesOut)
def reorder_series_endpoint(
    series_id: int,
    payload: SeriesReorder,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    out = engine.reorder_series(db, series_id, payload.post_ids)
    db.commit()
    return out


# ============================================================================ #
# Bulk propios del blog
# ============================================================================ #
@router.post("/bulk/feature", response_model=BulkResult)
def bulk_feature_endpoint(
    payload: BulkFeatureRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    result = engine.bulk_feature(db, payload.ids, payload.featured, actor_id=user_id)
    db.commit()
    return result


@router.post("/bulk/categories", response_model=BulkResult)
def bulk_categories_endpoint(
    payload: BulkCategoriesRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    result = engine.bulk_set_categories(db, payload.ids, payload.category_ids, actor_id=user_id)
    db.commit()
    return result


# ============================================================================ #
# Por post
# ============================================================================ #
@router.get("/{item_id}/adjacent", response_model=AdjacentPosts)
def adjacent_posts_endpoint(item_id: int, db: Session = Depends(get_db), engine: PostEngine = Depends(get_post_engine)):
    return engine.adjacent(db, item_id)


@router.post("/{item_id}/clone", response_model=PostOut, status_code=201)
def clone_post_endpoint(
    item_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    return commit_and_refresh(db, engine.clone_post(db, item_id, author_id=user_id))


@router.post("/{item_id}/featured", response_model=PostOut)
def set_featured_endpoint(
    item_id: int,
    payload: FeatureRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    return commit_and_refresh(db, engine.set_featured(db, item_id, payload.featured, actor_id=user_id))


@router.post("/{item_id}/pinned", response_model=PostOut)
def set_pinned_endpoint(
    item_id: int,
    payload: PinRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    post = engine.set_pinned(db, item_id, payload.pinned, pin_order=payload.pin_order, actor_id=user_id)
    return commit_and_refresh(db, post)


@router.put("/{item_id}/categories", response_model=PostOut)
def set_categories_endpoint(
    item_id: int,
    payload: SetCategoriesRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    return commit_and_refresh(db, engine.set_categories(db, item_id, payload.category_ids, actor_id=user_id))


@router.delete("/{item_id}/series", response_model=PostOut)
def remove_from_series_endpoint(
    item_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    engine: PostEngine = Depends(get_post_engine),
):
    return commit_and_refresh(db, engine.remove_post_from_series(db, item_id, actor_id=user_id))


add_lifecycle_routes(
    router,
    engine_dep=get_post_engine,
    out_schema=PostOut,
    create_schema=PostCreate,
    update_schema=PostUpdate,
    revision_schema=RevisionOut,
)
