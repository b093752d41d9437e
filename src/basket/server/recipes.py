"""Recipe routes."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from basket.db import recipes
from basket.models.recipes import Recipe, RecipeIngredientInput
from basket.models.shopping import ShoppingListItem
from basket.models.users import Actor
from basket.server import deps

router = APIRouter(tags=["recipes"])


class RecipeUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=2000)
    ingredients: Optional[list[RecipeIngredientInput]] = None


class AddToListRequest(BaseModel):
    store_id: str = Field(min_length=1)


class VisibilityRequest(BaseModel):
    is_hidden: bool


@router.get("/recipes/{recipe_id}", response_model=Recipe)
def get_recipe(recipe_id: str, actor: Actor = Depends(deps.get_actor)) -> Recipe:
    return recipes.get_recipe(recipe_id, actor)


@router.patch("/recipes/{recipe_id}", response_model=Recipe)
def update_recipe(recipe_id: str, payload: RecipeUpdateRequest, actor: Actor = Depends(deps.get_actor)) -> Recipe:
    changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
    if "ingredients" in changes:
        changes["ingredients"] = payload.ingredients or []
    return recipes.update_recipe(recipe_id, actor, **changes)


@router.delete("/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe(recipe_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    recipes.delete_recipe(recipe_id, actor)


@router.post("/recipes/{recipe_id}/add-to-list", response_model=list[ShoppingListItem])
def add_recipe_to_list(
    recipe_id: str, payload: AddToListRequest, actor: Actor = Depends(deps.get_actor)
) -> list[ShoppingListItem]:
    return recipes.add_recipe_to_shopping_list(recipe_id, payload.store_id, actor)


@router.put("/recipes/{recipe_id}/visibility", response_model=Recipe)
def set_recipe_hidden(recipe_id: str, payload: VisibilityRequest, actor: Actor = Depends(deps.get_actor)) -> Recipe:
    return recipes.set_recipe_hidden(recipe_id, payload.is_hidden, actor)


@router.put("/recipes/{recipe_id}/tags/{tag_id}", response_model=Recipe)
def assign_recipe_tag(recipe_id: str, tag_id: str, actor: Actor = Depends(deps.get_actor)) -> Recipe:
    return recipes.assign_tag(recipe_id, tag_id, actor)


@router.delete("/recipes/{recipe_id}/tags/{tag_id}", response_model=Recipe)
def remove_recipe_tag(recipe_id: str, tag_id: str, actor: Actor = Depends(deps.get_actor)) -> Recipe:
    return recipes.remove_tag(recipe_id, tag_id, actor)
