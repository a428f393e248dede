# contentcore/schemas/blog.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from contentcore.schemas.content import BulkIds, ItemCreateBase, ItemOutBase, ItemUpdateBase


# ---------- Category ----------
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    post_count: int = 0


class CategoryRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    slug: str


# ---------- Series ----------
class SeriesCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=500)


class SeriesUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=500)


class SeriesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    created_at: datetime
    post_ids: List[int] = []


class SeriesAddPost(BaseModel):
    post_id: int
    order: Optional[int] = None


class SeriesReorder(BaseModel):
    post_ids: List[int]


# ---------- Post ----------
class PostCreate(ItemCreateBase):
    is_featured: bool = False
    is_pinned: bool = False
    pin_order: int = 0
    allow_comments: bool = True
    category_ids: List[int] = []


class PostUpdate(ItemUpdateBase):
    is_featured: Optional[bool] = None
    is_pinned: Optional[bool] = None
    pin_order: Optional[int] = None
    allow_comments: Optional[bool] = None
    category_ids: Optional[List[int]] = None


class PostOut(ItemOutBase):
    is_featured: bool
    is_pinned: bool
    pin_order: int
    allow_comments: bool
    series_id: Optional[int] = None
    series_order: Optional[int] = None
    categories: List[CategoryRef] = []


class FeedItem(BaseModel):
    id: int
    title: str
    slug: str
    path: str
    excerpt: Optional[str] = None
    author_id: int
    published_at: Optional[datetime] = None


class AdjacentPost(BaseModel):
    id: int
    title: str
    slug: str
    path: str
    published_at: Optional[datetime] = None


class AdjacentPosts(BaseModel):
    previous: Optional[AdjacentPost] = None
    next: Optional[AdjacentPost] = None


class PinRequest(BaseModel):
    pinned: bool = True
    pin_order: int = 0


class FeatureRequest(BaseModel):
    featured: bool = True


class PinnedReorder(BaseModel):
    post_ids: List[int]


class BulkFeatureRequest(BulkIds):
    featured: bool = True


class BulkCategoriesRequest(BulkIds):
    category_ids: List[int] = []


class SetCategoriesRequest(BaseModel):
    category_ids: List[int] = []
