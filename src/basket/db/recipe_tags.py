"""Household recipe tags."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from basket.access import Role
from basket.errors import ConflictError, NotFoundError
from basket.models.recipes import RecipeTag
from basket.models.users import Actor

from .catalog import name_norm
from .models import RecipeTagAssignmentORM, RecipeTagORM
from .repository import session_scope
from .roles import require_household
from .validation import clean_text, optional_text

logger = logging.getLogger(__name__)

MAX_TAG_NAME_LENGTH = 50
MAX_TAG_COLOR_LENGTH = 255

_UNSET = object()


def tag_to_model(row: RecipeTagORM) -> RecipeTag:
    return RecipeTag.model_validate(
        {
            "id": row.id,
            "household_id": row.household_id,
            "name": row.name,
            "color": row.color,
            "created_by_id": row.created_by_id,
            "created_at": row.created_at,
        }
    )


def tags_by_recipe(session: Session, recipe_ids: Iterable[str]) -> Dict[str, List[RecipeTag]]:
    """Tags of each recipe, ordered by name, in one query."""

    ids = list(recipe_ids)
    grouped: Dict[str, List[RecipeTag]] = {recipe_id: [] for recipe_id in ids}
    if not ids:
        return grouped
    rows = session.execute(
        select(RecipeTagAssignmentORM.recipe_id, RecipeTagORM)
        .join(RecipeTagORM, RecipeTagORM.id == RecipeTagAssignmentORM.tag_id)
        .where(RecipeTagAssignmentORM.recipe_id.in_(ids))
        .order_by(RecipeTagORM.name_norm.asc())
    ).all()
    for recipe_id, tag in rows:
        grouped[recipe_id].append(tag_to_model(tag))
    return grouped


def get_tag_row(session: Session, household_id: str, tag_id: str) -> RecipeTagORM:
    row = session.get(RecipeTagORM, tag_id)
    if row is None or row.household_id != household_id:
        raise NotFoundError("Recipe tag not found")
    return row


def _flush_unique(session: Session, row: RecipeTagORM) -> None:
    try:
        with session.begin_nested():
            session.add(row)
            session.flush()
    except IntegrityError as exc:
        raise ConflictError("A tag with this name already exists in the household") from exc


def create_tag(household_id: str, name: str, actor: Actor, *, color: Optional[str] = None) -> RecipeTag:
    tag_name = clean_text(name, field="Tag name", max_length=MAX_TAG_NAME_LENGTH)
    tag_color = optional_text(color, field="Tag color", max_length=MAX_TAG_COLOR_LENGTH)
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.EDITOR, "manage recipe tags")
        row = RecipeTagORM(
            household_id=household_id,
            name=tag_name,
            name_norm=name_norm(tag_name),
            color=tag_color,
            created_by_id=actor.user_id,
        )
        _flush_unique(session, row)
        logger.info("Created recipe tag %s in household %s", row.id, household_id)
        return tag_to_model(row)


def list_tags(household_id: str, actor: Actor) -> List[RecipeTag]:
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.VIEWER, "view recipe tags")
        rows = session.execute(
            select(RecipeTagORM)
            .where(RecipeTagORM.household_id == household_id)
            .order_by(RecipeTagORM.name_norm.asc())
        ).scalars()
        return [tag_to_model(row) for row in rows]


def update_tag(
    household_id: str,
    tag_id: str,
    actor: Actor,
    *,
    name: str | object = _UNSET,
    color: Optional[str] | object = _UNSET,
) -> RecipeTag:
    """Rename or recolor a tag; ``color=None`` clears the color."""

    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.EDITOR, "manage recipe tags")
        row = get_tag_row(session, household_id, tag_id)
        if name is not _UNSET:
            row.name = clean_text(name, field="Tag name", max_length=MAX_TAG_NAME_LENGTH)  # type: ignore[arg-type]
            row.name_norm = name_norm(row.name)
        if color is not _UNSET:
            row.color = optional_text(color, field="Tag color", max_length=MAX_TAG_COLOR_LENGTH)  # type: ignore[arg-type]
        _flush_unique(session, row)
        return tag_to_model(row)


def delete_tag(household_id: str, tag_id: str, actor: Actor) -> None:
    """Delete a tag; its assignments go with it."""

    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.EDITOR, "manage recipe tags")
        session.delete(get_tag_row(session, household_id, tag_id))
        logger.info("Deleted recipe tag %s from household %s", tag_id, household_id)


__all__ = [
    "MAX_TAG_NAME_LENGTH",
    "create_tag",
    "list_tags",
    "update_tag",
    "delete_tag",
    "get_tag_row",
    "tags_by_recipe",
    "tag_to_model",
]
