# contentcore/schemas/content.py
# Pydantic: modelos compartidos por pages y blog
from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

ContentStatusLiteral = Literal["draft", "published", "scheduled", "archived"]
SortOrder = Literal["asc", "desc"]

T = TypeVar("T")


# ---------- Inputs comunes ----------
class ItemCreateBase(BaseModel):
    title: str = Field(..., max_length=500)
    slug: Optional[str] = Field(None, max_length=250)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=500)
    status: ContentStatusLiteral = "draft"
    scheduled_for: Optional[datetime] = None
    meta_title: Optional[str] = Field(None, max_length=200)
    meta_description: Optional[str] = Field(None, max_length=500)
    structured_data: Optional[dict[str, Any]] = None
    password: Optional[str] = Field(None, max_length=128)


class ItemUpdateBase(BaseModel):
    """
    Partial update. A field left out is untouched; an explicit null clears it
    (`scheduled_for: null` on a scheduled item sends it back to draft).
    """

    title: Optional[str] = Field(None, max_length=500)
    slug: Optional[str] = Field(None, max_length=250)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=500)
    status: Optional[ContentStatusLiteral] = None
    scheduled_for: Optional[datetime] = None
    meta_title: Optional[str] = Field(None, max_length=200)
    meta_description: Optional[str] = Field(None, max_length=500)
    structured_data: Optional[dict[str, Any]] = None
    password: Optional[str] = Field(None, max_length=128)
    change_note: Optional[str] = Field(None, max_length=500)


class ItemOutBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    status: ContentStatusLiteral
    author_id: int
    word_count: int
    reading_time: int
    revision: int
    is_locked: bool
    locked_by: Optional[int] = None
    locked_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    is_system: bool
    is_password_protected: bool = False
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    structured_data: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


class Paginated(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# ---------- Locks ----------
class LockInfo(BaseModel):
    item_id: int
    is_locked: bool
    locked_by: Optional[int] = None
    locked_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_expired: bool = False


class LockRequest(BaseModel):
    force: bool = False


# ---------- Revisions ----------
class RevisionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    revision_number: int
    change_note: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime


class FieldChange(BaseModel):
    field: str
    before: str
    after: str


class RevisionDiff(BaseModel):
    from_revision: int
    to_revision: int
    title_changed: bool
    content_changed: bool
    excerpt_changed: bool
    changes: List[FieldChange] = []
    content_diff: str = ""


# ---------- Bulk ----------
class BulkItemError(BaseModel):
    id: Any
    code: str
    error: str


class BulkResult(BaseModel):
    count: int = 0
    errors: List[BulkItemError] = []


class BulkIds(BaseModel):
    ids: List[Any] = []


class BulkStatusRequest(BulkIds):
    status: ContentStatusLiteral
    scheduled_for: Optional[datetime] = None


class BulkDeleteRequest(BulkIds):
    permanent: bool = False


class BulkScheduleRequest(BulkIds):
    scheduled_for: datetime


# ---------- Sweeps / agregados ----------
class ScheduleError(BaseModel):
    id: int
    code: str = "ERROR"
    error: str


class ScheduleProcessResult(BaseModel):
    processed: int = 0
    published: List[int] = []
    errors: List[ScheduleError] = []


class ScheduledItem(BaseModel):
    id: int
    title: str
    slug: str
    scheduled_for: datetime


class ScheduleRequest(BaseModel):
    scheduled_for: datetime


class ContentStats(BaseModel):
    total: int
    draft: int
    published: int
    scheduled: int
    archived: int
    system: int
    custom: int
    deleted: int


class SitemapEntry(BaseModel):
    path: str
    updated_at: datetime
