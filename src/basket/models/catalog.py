"""Store layout and catalog item models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StoreAisle(BaseModel):
    id: str
    store_id: str
    name: str
    sort_order: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class StoreSection(BaseModel):
    id: str
    store_id: str
    aisle_id: str
    name: str
    sort_order: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class StoreItem(BaseModel):
    """Reusable catalog entry scoped to one store.

    ``aisle_name``/``section_name`` are only filled by layout-aware listings.
    """

    id: str
    store_id: str
    name: str
    name_norm: str
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
    is_favorite: bool = False
    is_hidden: bool = False
    aisle_name: Optional[str] = None
    section_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class SortOrderUpdate(BaseModel):
    id: str = Field(min_length=1)
    sort_order: int = Field(ge=0, le=100_000)

    model_config = ConfigDict(frozen=True)


__all__ = ["StoreAisle", "StoreSection", "StoreItem", "SortOrderUpdate"]
