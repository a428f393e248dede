# contentcore/schemas/settings.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EngineConfigPatch(BaseModel):
    """Runtime tunables an admin may change; omitted fields stay as they are."""

    model_config = ConfigDict(extra="forbid")

    lock_timeout_minutes: Optional[int] = Field(None, ge=1)
    max_depth: Optional[int] = Field(None, ge=0)
    max_revisions: Optional[int] = Field(None, ge=0)
    max_bulk_size: Optional[int] = Field(None, ge=1)
    items_per_page: Optional[int] = Field(None, ge=1)
    max_items_per_page: Optional[int] = Field(None, ge=1)
    reading_speed_wpm: Optional[int] = Field(None, ge=1)
    excerpt_length: Optional[int] = Field(None, ge=10)
    min_word_count: Optional[int] = Field(None, ge=0)
    max_categories_per_item: Optional[int] = Field(None, ge=1)
    enable_hierarchy: Optional[bool] = None
    enable_locking: Optional[bool] = None
    enable_revisions: Optional[bool] = None
    enable_scheduling: Optional[bool] = None
    enable_password_protection: Optional[bool] = None
    allow_code_injection: Optional[bool] = None
    auto_register_system_pages: Optional[bool] = None
    default_template: Optional[str] = Field(None, max_length=64)
    default_visibility: Optional[str] = Field(None, max_length=32)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)
