# contentcore/schemas/pages.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from contentcore.schemas.content import BulkIds, ItemCreateBase, ItemOutBase, ItemUpdateBase

PageTemplate = Literal[
    "default", "full_width", "sidebar_left", "sidebar_right", "landing", "blank", "custom"
]
PageVisibility = Literal["public", "private", "password_protected", "logged_in_only"]

PAGE_TEMPLATES = ("default", "full_width", "sidebar_left", "sidebar_right", "landing", "blank", "custom")
PAGE_VISIBILITIES = ("public", "private", "password_protected", "logged_in_only")


class PageCreate(ItemCreateBase):
    parent_id: Optional[int] = None
    sort_order: int = 0
    template: Optional[PageTemplate] = None
    visibility: Optional[PageVisibility] = None
    custom_css: Optional[str] = Field(None, max_length=50_000)
    custom_head: Optional[str] = Field(None, max_length=10_000)
    custom_js: Optional[str] = Field(None, max_length=50_000)


class PageUpdate(ItemUpdateBase):
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    template: Optional[PageTemplate] = None
    visibility: Optional[PageVisibility] = None
    custom_css: Optional[str] = Field(None, max_length=50_000)
    custom_head: Optional[str] = Field(None, max_length=10_000)
    custom_js: Optional[str] = Field(None, max_length=50_000)


class PageOut(ItemOutBase):
    parent_id: Optional[int] = None
    depth: int
    path: str
    sort_order: int
    template: str
    visibility: str
    system_key: Optional[str] = None
    is_home_page: bool
    custom_css: Optional[str] = None
    custom_head: Optional[str] = None
    custom_js: Optional[str] = None


class PageTreeNode(BaseModel):
    id: int
    title: str
    slug: str
    path: str
    depth: int
    status: str
    sort_order: int
    is_system: bool
    children: List["PageTreeNode"] = []


class SystemPageRegistration(BaseModel):
    key: str
    slug: str
    title: str
    template: str
    is_registered: bool


class MoveRequest(BaseModel):
    parent_id: Optional[int] = None


class ReorderItem(BaseModel):
    id: int
    sort_order: int


class BulkReorderRequest(BaseModel):
    items: List[ReorderItem] = []


class BulkMoveRequest(BulkIds):
    parent_id: Optional[int] = None


class BulkTemplateRequest(BulkIds):
    template: PageTemplate


class BulkVisibilityRequest(BulkIds):
    visibility: PageVisibility


class PasswordCheck(BaseModel):
    password: str


class PageRevisionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    template: Optional[str] = None
    revision_number: int
    change_note: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime


PageTreeNode.model_rebuild()
