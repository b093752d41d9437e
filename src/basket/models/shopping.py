"""Shopping list models.

A list row is either linked to a catalog item or a free-text idea. Storage flattens both
into one nullable-heavy row; in memory the variant lives in ``ShoppingListItem.entry``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class QuantityUnit(BaseModel):
    id: str
    name: str
    abbreviation: str
    sort_order: int
    category: str

    model_config = ConfigDict(frozen=True)


class CatalogEntry(BaseModel):
    kind: Literal["catalog"] = "catalog"
    store_item_id: str
    item_name: Optional[str] = None
    qty: Optional[float] = Field(default=None, ge=0)
    unit_id: Optional[str] = None
    unit_abbreviation: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class IdeaEntry(BaseModel):
    kind: Literal["idea"] = "idea"
    name: str = Field(min_length=1, max_length=200)

    model_config = ConfigDict(frozen=True)


ShoppingEntry = Annotated[Union[CatalogEntry, IdeaEntry], Field(discriminator="kind")]


class ShoppingListItem(BaseModel):
    """Single occurrence of an item (or idea) on a store's shopping list."""

    id: str
    store_id: str
    entry: ShoppingEntry
    notes: Optional[str] = Field(default=None, max_length=500)
    is_checked: bool = False
    checked_at: Optional[datetime] = None
    checked_by_id: Optional[str] = None
    is_sample: bool = False
    is_unsure: bool = False
    snoozed_until: Optional[datetime] = None
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def is_idea(self) -> bool:
        return isinstance(self.entry, IdeaEntry)

    @property
    def store_item_id(self) -> Optional[str]:
        return self.entry.store_item_id if isinstance(self.entry, CatalogEntry) else None

    @property
    def display_name(self) -> Optional[str]:
        if isinstance(self.entry, IdeaEntry):
            return self.entry.name
        return self.entry.item_name


class ShoppingListItemInput(BaseModel):
    """Create-or-update request; fields left unset keep their stored value on update."""

    id: Optional[str] = None
    store_id: str = Field(min_length=1)
    is_idea: bool = False
    name: Optional[str] = Field(default=None, max_length=200)
    store_item_id: Optional[str] = None
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None
    qty: Optional[float] = Field(default=None, ge=0)
    unit_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    is_checked: Optional[bool] = None
    is_sample: Optional[bool] = None
    is_unsure: Optional[bool] = None
    snoozed_until: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "QuantityUnit",
    "CatalogEntry",
    "IdeaEntry",
    "ShoppingEntry",
    "ShoppingListItem",
    "ShoppingListItemInput",
]
