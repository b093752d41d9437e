"""Household recipes and merging their ingredients into a store's shopping list."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from basket.access import Role
from basket.errors import InvalidInputError, NotFoundError
from basket.models.recipes import Recipe, RecipeIngredient, RecipeIngredientInput, RecipeTag
from basket.models.shopping import ShoppingListItem, ShoppingListItemInput
from basket.models.users import Actor

from .models import QuantityUnitORM, RecipeIngredientORM, RecipeORM, RecipeTagAssignmentORM
from .recipe_tags import get_tag_row, tags_by_recipe
from .repository import session_scope
from .roles import require_household, require_store
from .shopping_list import load_entry, upsert_in_session
from .validation import MAX_ITEM_NAME_LENGTH, clean_text, optional_text

logger = logging.getLogger(__name__)

_UNSET = object()

IngredientsInput = Iterable[Union[RecipeIngredientInput, dict]]


def _to_model(row: RecipeORM, ingredients: List[RecipeIngredientORM], tags: List[RecipeTag]) -> Recipe:
    return Recipe.model_validate(
        {
            "id": row.id,
            "household_id": row.household_id,
            "name": row.name,
            "notes": row.notes,
            "is_hidden": row.is_hidden,
            "tags": tags,
            "ingredients": [
                RecipeIngredient.model_validate(
                    {
                        "id": ingredient.id,
                        "recipe_id": ingredient.recipe_id,
                        "name": ingredient.name,
                        "qty": ingredient.qty,
                        "unit_id": ingredient.unit_id,
                        "sort_order": ingredient.sort_order,
                    }
                )
                for ingredient in ingredients
            ],
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _load(session: Session, row: RecipeORM) -> Recipe:
    return _to_model(row, _ingredients(session, row.id), tags_by_recipe(session, [row.id])[row.id])


def _load_many(session: Session, rows: Sequence[RecipeORM]) -> List[Recipe]:
    tags: Dict[str, List[RecipeTag]] = tags_by_recipe(session, [row.id for row in rows])
    return [_to_model(row, _ingredients(session, row.id), tags[row.id]) for row in rows]


def _ingredients(session: Session, recipe_id: str) -> List[RecipeIngredientORM]:
    return list(
        session.execute(
            select(RecipeIngredientORM)
            .where(RecipeIngredientORM.recipe_id == recipe_id)
            .order_by(RecipeIngredientORM.sort_order.asc())
        ).scalars()
    )


def _parse_ingredients(ingredients: IngredientsInput) -> List[RecipeIngredientInput]:
    try:
        return [
            item if isinstance(item, RecipeIngredientInput) else RecipeIngredientInput.model_validate(item)
            for item in ingredients
        ]
    except ValidationError as exc:
        raise InvalidInputError("Invalid recipe ingredient", details=exc.errors(include_url=False)) from exc


def _replace_ingredients(session: Session, recipe_id: str, ingredients: List[RecipeIngredientInput]) -> None:
    session.execute(delete(RecipeIngredientORM).where(RecipeIngredientORM.recipe_id == recipe_id))
    for position, ingredient in enumerate(ingredients):
        if ingredient.unit_id is not None and session.get(QuantityUnitORM, ingredient.unit_id) is None:
            raise InvalidInputError(f"Unknown quantity unit '{ingredient.unit_id}'")
        session.add(
            RecipeIngredientORM(
                recipe_id=recipe_id,
                name=clean_text(ingredient.name, field="Ingredient name", max_length=MAX_ITEM_NAME_LENGTH),
                qty=ingredient.qty,
                unit_id=ingredient.unit_id,
                sort_order=position,
            )
        )
    session.flush()


def _get_recipe_row(session: Session, recipe_id: str, actor: Actor, minimum: Role, action: str) -> RecipeORM:
    row = session.get(RecipeORM, recipe_id)
    if row is None:
        raise NotFoundError("Recipe not found")
    require_household(session, actor.user_id, row.household_id, minimum, action)
    return row


def create_recipe(
    household_id: str,
    name: str,
    actor: Actor,
    *,
    notes: Optional[str] = None,
    ingredients: IngredientsInput = (),
) -> Recipe:
    recipe_name = clean_text(name, field="Recipe name", max_length=MAX_ITEM_NAME_LENGTH)
    parsed = _parse_ingredients(ingredients)
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.EDITOR, "add recipes")
        row = RecipeORM(
            household_id=household_id,
            name=recipe_name,
            notes=optional_text(notes, field="Notes", max_length=2000),
            created_by_id=actor.user_id,
            updated_by_id=actor.user_id,
        )
        session.add(row)
        session.flush()
        _replace_ingredients(session, row.id, parsed)
        logger.info("Created recipe %s in household %s", row.id, household_id)
        return _load(session, row)


def list_recipes(household_id: str, actor: Actor, *, include_hidden: bool = False) -> List[Recipe]:
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.VIEWER, "view recipes")
        query = select(RecipeORM).where(RecipeORM.household_id == household_id)
        if not include_hidden:
            query = query.where(RecipeORM.is_hidden.is_(False))
        rows = session.execute(query.order_by(RecipeORM.name.asc())).scalars().all()
        return _load_many(session, rows)


def search_recipes_by_tags(household_id: str, tag_ids: Iterable[str], actor: Actor) -> List[Recipe]:
    """Visible recipes carrying every one of ``tag_ids``; no tags means every visible recipe."""

    wanted = list(dict.fromkeys(tag_ids))
    if not wanted:
        return list_recipes(household_id, actor)
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.VIEWER, "view recipes")
        for tag_id in wanted:
            get_tag_row(session, household_id, tag_id)
        matching = (
            select(RecipeTagAssignmentORM.recipe_id)
            .where(RecipeTagAssignmentORM.tag_id.in_(wanted))
            .group_by(RecipeTagAssignmentORM.recipe_id)
            .having(func.count(RecipeTagAssignmentORM.tag_id) == len(wanted))
        )
        rows = session.execute(
            select(RecipeORM)
            .where(
                RecipeORM.household_id == household_id,
                RecipeORM.is_hidden.is_(False),
                RecipeORM.id.in_(matching),
            )
            .order_by(RecipeORM.name.asc())
        ).scalars().all()
        return _load_many(session, rows)


def get_recipe(recipe_id: str, actor: Actor) -> Recipe:
    with session_scope() as session:
        row = _get_recipe_row(session, recipe_id, actor, Role.VIEWER, "view recipes")
        return _load(session, row)


def update_recipe(
    recipe_id: str,
    actor: Actor,
    *,
    name: str | object = _UNSET,
    notes: Optional[str] | object = _UNSET,
    ingredients: IngredientsInput | object = _UNSET,
) -> Recipe:
    parsed = _parse_ingredients(ingredients) if ingredients is not _UNSET else None  # type: ignore[arg-type]
    with session_scope() as session:
        row = _get_recipe_row(session, recipe_id, actor, Role.EDITOR, "edit recipes")
        if name is not _UNSET:
            row.name = clean_text(name, field="Recipe name", max_length=MAX_ITEM_NAME_LENGTH)  # type: ignore[arg-type]
        if notes is not _UNSET:
            row.notes = optional_text(notes, field="Notes", max_length=2000)  # type: ignore[arg-type]
        if parsed is not None:
            _replace_ingredients(session, row.id, parsed)
        row.updated_by_id = actor.user_id
        session.flush()
        return _load(session, row)


def delete_recipe(recipe_id: str, actor: Actor) -> None:
    with session_scope() as session:
        row = _get_recipe_row(session, recipe_id, actor, Role.EDITOR, "delete recipes")
        session.delete(row)
        logger.info("Deleted recipe %s", recipe_id)


def set_recipe_hidden(recipe_id: str, hidden: bool, actor: Actor) -> Recipe:
    """Hide a recipe from default listings and tag searches, or show it again."""

    with session_scope() as session:
        row = _get_recipe_row(session, recipe_id, actor, Role.EDITOR, "edit recipes")
        if row.is_hidden != hidden:
            row.is_hidden = hidden
            row.updated_by_id = actor.user_id
            session.flush()
        return _load(session, row)


def assign_tag(recipe_id: str, tag_id: str, actor: Actor) -> Recipe:
    """Attach a tag of the recipe's household; attaching it twice changes nothing."""

    with session_scope() as session:
        row = _get_recipe_row(session, recipe_id, actor, Role.EDITOR, "tag recipes")
        get_tag_row(session, row.household_id, tag_id)
        if session.get(RecipeTagAssignmentORM, (row.id, tag_id)) is None:
            session.add(RecipeTagAssignmentORM(recipe_id=row.id, tag_id=tag_id))
            session.flush()
        return _load(session, row)


def remove_tag(recipe_id: str, tag_id: str, actor: Actor) -> Recipe:
    with session_scope() as session:
        row = _get_recipe_row(session, recipe_id, actor, Role.EDITOR, "tag recipes")
        get_tag_row(session, row.household_id, tag_id)
        session.execute(
            delete(RecipeTagAssignmentORM).where(
                RecipeTagAssignmentORM.recipe_id == row.id,
                RecipeTagAssignmentORM.tag_id == tag_id,
            )
        )
        return _load(session, row)


def add_recipe_to_shopping_list(recipe_id: str, store_id: str, actor: Actor) -> List[ShoppingListItem]:
    """Put every ingredient on the store's list, one row per catalog item.

    Ingredients already listed are updated (and unchecked) rather than duplicated, so
    repeating the call leaves the list unchanged.
    """

    with session_scope() as session:
        recipe = _get_recipe_row(session, recipe_id, actor, Role.VIEWER, "view recipes")
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the shopping list")
        row_ids: List[str] = []
        for ingredient in _ingredients(session, recipe.id):
            payload = ShoppingListItemInput(
                store_id=store_id,
                name=ingredient.name,
                qty=ingredient.qty,
                unit_id=ingredient.unit_id,
                is_checked=False,
            )
            row = upsert_in_session(session, payload, actor.user_id)
            if row.id not in row_ids:
                row_ids.append(row.id)
        logger.info("Added recipe %s to shopping list of store %s (%d rows)", recipe_id, store_id, len(row_ids))
        return [load_entry(session, row_id) for row_id in row_ids]


__all__ = [
    "create_recipe",
    "list_recipes",
    "get_recipe",
    "update_recipe",
    "delete_recipe",
    "set_recipe_hidden",
    "assign_tag",
    "remove_tag",
    "search_recipes_by_tags",
    "add_recipe_to_shopping_list",
]
