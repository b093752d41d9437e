"""Household recipe models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecipeIngredient(BaseModel):
    id: str
    recipe_id: str
    name: str
    qty: Optional[float] = None
    unit_id: Optional[str] = None
    sort_order: int = 0

    model_config = ConfigDict(frozen=True)


class RecipeIngredientInput(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    qty: Optional[float] = Field(default=None, ge=0)
    unit_id: Optional[str] = None


class RecipeTag(BaseModel):
    """Label shared by every recipe of a household."""

    id: str
    household_id: str
    name: str
    color: Optional[str] = None
    created_by_id: str
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class Recipe(BaseModel):
    id: str
    household_id: str
    name: str
    notes: Optional[str] = None
    is_hidden: bool = False
    tags: List[RecipeTag] = Field(default_factory=list)
    ingredients: List[RecipeIngredient] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


__all__ = ["Recipe", "RecipeIngredient", "RecipeIngredientInput", "RecipeTag"]
