"""Store item catalog: normalized names, get-or-create, search and flags.

``(store_id, name_norm)`` is unique. ``create_or_get_item`` relies on that constraint
as its race guard: a losing concurrent insert is rolled back to a savepoint and the
winner's row is returned instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Literal, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from basket import metrics
from basket.access import Role
from basket.config import get_settings
from basket.errors import ConflictError, InvalidInputError, NotFoundError
from basket.models.catalog import StoreItem
from basket.models.users import Actor

from .layout import get_aisle_row, get_section_row
from .models import StoreAisleORM, StoreItemORM, StoreSectionORM, utc_now
from .repository import session_scope
from .roles import require_store
from .validation import MAX_ITEM_NAME_LENGTH, clean_text

logger = logging.getLogger(__name__)

_UNSET = object()
_UNPLACED = 999_999

ItemFlag = Literal["favorite", "hidden"]


def name_norm(raw_name: str) -> str:
    """Case-fold, trim and collapse internal whitespace."""

    return " ".join(raw_name.casefold().split())


def _item_query():
    return (
        select(StoreItemORM, StoreSectionORM, StoreAisleORM)
        .outerjoin(StoreSectionORM, StoreSectionORM.id == StoreItemORM.section_id)
        .outerjoin(
            StoreAisleORM,
            StoreAisleORM.id == func.coalesce(StoreSectionORM.aisle_id, StoreItemORM.aisle_id),
        )
    )


def _to_model(
    row: StoreItemORM,
    section: Optional[StoreSectionORM] = None,
    aisle: Optional[StoreAisleORM] = None,
) -> StoreItem:
    return StoreItem.model_validate(
        {
            "id": row.id,
            "store_id": row.store_id,
            "name": row.name,
            "name_norm": row.name_norm,
            "aisle_id": section.aisle_id if section is not None else row.aisle_id,
            "section_id": row.section_id,
            "usage_count": row.usage_count,
            "last_used_at": row.last_used_at,
            "is_favorite": row.is_favorite,
            "is_hidden": row.is_hidden,
            "aisle_name": aisle.name if aisle is not None else None,
            "section_name": section.name if section is not None else None,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def load_item(session: Session, item_id: str) -> StoreItem:
    item, section, aisle = session.execute(_item_query().where(StoreItemORM.id == item_id)).one()
    return _to_model(item, section, aisle)


def get_item_row(session: Session, store_id: str, item_id: str) -> StoreItemORM:
    row = session.get(StoreItemORM, item_id)
    if row is None or row.store_id != store_id:
        raise NotFoundError("Item not found")
    return row


def resolve_location(
    session: Session,
    store_id: str,
    aisle_id: Optional[str],
    section_id: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """Return the ``(aisle_id, section_id)`` pair to store.

    A section implies its aisle, so only the section is kept when one is given.
    """

    if section_id:
        section = get_section_row(session, store_id, section_id)
        if aisle_id and aisle_id != section.aisle_id:
            raise InvalidInputError("Section does not belong to the given aisle")
        return None, section.id
    if aisle_id:
        return get_aisle_row(session, store_id, aisle_id).id, None
    return None, None


def get_or_create_item_row(
    session: Session,
    store_id: str,
    raw_name: str,
    actor_id: str,
    *,
    aisle_id: Optional[str] = None,
    section_id: Optional[str] = None,
) -> Tuple[StoreItemORM, bool]:
    """Find the item by normalized name or insert it; returns ``(row, created)``.

    An existing item is returned untouched, including its location.
    """

    display_name = clean_text(raw_name, field="Item name", max_length=MAX_ITEM_NAME_LENGTH)
    normalized = name_norm(display_name)
    lookup = select(StoreItemORM).where(
        StoreItemORM.store_id == store_id, StoreItemORM.name_norm == normalized
    )
    existing = session.execute(lookup).scalar_one_or_none()
    if existing is not None:
        metrics.CATALOG_UPSERTS.labels(result="existing").inc()
        return existing, False

    stored_aisle, stored_section = resolve_location(session, store_id, aisle_id, section_id)
    row = StoreItemORM(
        store_id=store_id,
        name=display_name,
        name_norm=normalized,
        aisle_id=stored_aisle,
        section_id=stored_section,
        usage_count=0,
        created_by_id=actor_id,
        updated_by_id=actor_id,
    )
    try:
        with session.begin_nested():
            session.add(row)
            session.flush()
    except IntegrityError:
        winner = session.execute(lookup).scalar_one_or_none()
        if winner is None:
            raise
        metrics.CATALOG_UPSERTS.labels(result="raced").inc()
        logger.info("Concurrent insert for item '%s' in store %s resolved to %s", normalized, store_id, winner.id)
        return winner, False

    metrics.CATALOG_UPSERTS.labels(result="created").inc()
    logger.info("Created catalog item %s in store %s", row.id, store_id)
    return row, True


def record_usage(row: StoreItemORM, when: Optional[datetime] = None) -> None:
    row.usage_count = (row.usage_count or 0) + 1
    row.last_used_at = when or utc_now()


def create_or_get_item(
    store_id: str,
    name: str,
    actor: Actor,
    *,
    aisle_id: Optional[str] = None,
    section_id: Optional[str] = None,
) -> StoreItem:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the catalog")
        row, _ = get_or_create_item_row(
            session, store_id, name, actor.user_id, aisle_id=aisle_id, section_id=section_id
        )
        return load_item(session, row.id)


def get_item(store_id: str, item_id: str, actor: Actor) -> StoreItem:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "view the catalog")
        get_item_row(session, store_id, item_id)
        return load_item(session, item_id)


def search_items(store_id: str, query: str, actor: Actor, limit: Optional[int] = None) -> List[StoreItem]:
    """Substring search over visible items.

    Prefix matches come first, then higher ``usage_count``, then most recently used
    (never-used last), then ``name_norm`` alphabetically.
    """

    settings = get_settings()
    effective_limit = settings.search_default_limit if limit is None else limit
    if effective_limit < 1 or effective_limit > settings.search_max_limit:
        raise InvalidInputError(f"limit must be between 1 and {settings.search_max_limit}")
    term = name_norm(query or "")
    prefix_rank = case((StoreItemORM.name_norm.startswith(term, autoescape=True), 0), else_=1)
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "search the catalog")
        rows = session.execute(
            _item_query()
            .where(
                StoreItemORM.store_id == store_id,
                StoreItemORM.is_hidden.is_(False),
                StoreItemORM.name_norm.contains(term, autoescape=True),
            )
            .order_by(
                prefix_rank.asc(),
                StoreItemORM.usage_count.desc(),
                StoreItemORM.last_used_at.is_(None).asc(),
                StoreItemORM.last_used_at.desc(),
                StoreItemORM.name_norm.asc(),
            )
            .limit(effective_limit)
        ).all()
        return [_to_model(item, section, aisle) for item, section, aisle in rows]


def list_items(store_id: str, actor: Actor, *, include_hidden: bool = False) -> List[StoreItem]:
    """Catalog in walking order; unplaced items come last."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "view the catalog")
        query = _item_query().where(StoreItemORM.store_id == store_id)
        if not include_hidden:
            query = query.where(StoreItemORM.is_hidden.is_(False))
        rows = session.execute(
            query.order_by(
                func.coalesce(StoreAisleORM.sort_order, _UNPLACED).asc(),
                func.coalesce(StoreSectionORM.sort_order, _UNPLACED).asc(),
                StoreItemORM.name_norm.asc(),
            )
        ).all()
        return [_to_model(item, section, aisle) for item, section, aisle in rows]


def update_item(
    store_id: str,
    item_id: str,
    actor: Actor,
    *,
    name: str | object = _UNSET,
    aisle_id: Optional[str] | object = _UNSET,
    section_id: Optional[str] | object = _UNSET,
) -> StoreItem:
    """Rename and/or relocate an item.

    Renaming onto another item's normalized name is a CONFLICT. Setting only an aisle
    clears the section.
    """

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the catalog")
        row = get_item_row(session, store_id, item_id)
        if name is not _UNSET:
            display_name = clean_text(name, field="Item name", max_length=MAX_ITEM_NAME_LENGTH)  # type: ignore[arg-type]
            normalized = name_norm(display_name)
            if normalized != row.name_norm:
                clash = session.execute(
                    select(StoreItemORM.id).where(
                        StoreItemORM.store_id == store_id,
                        StoreItemORM.name_norm == normalized,
                    )
                ).first()
                if clash is not None:
                    raise ConflictError("Another item with this name already exists", details={"item_id": clash[0]})
            row.name = display_name
            row.name_norm = normalized
        if aisle_id is not _UNSET or section_id is not _UNSET:
            current_aisle = row.aisle_id
            if row.section_id is not None:
                current_aisle = session.get(StoreSectionORM, row.section_id).aisle_id
            if section_id is _UNSET:
                target_aisle, target_section = aisle_id, None
            elif section_id is None:
                target_aisle = current_aisle if aisle_id is _UNSET else aisle_id
                target_section = None
            else:
                target_aisle = None if aisle_id is _UNSET else aisle_id
                target_section = section_id
            row.aisle_id, row.section_id = resolve_location(session, store_id, target_aisle, target_section)  # type: ignore[arg-type]
        row.updated_by_id = actor.user_id
        try:
            with session.begin_nested():
                session.flush()
        except IntegrityError as exc:
            raise ConflictError("Another item with this name already exists") from exc
        return load_item(session, row.id)


def set_item_flag(
    store_id: str,
    item_id: str,
    flag: ItemFlag,
    actor: Actor,
    value: Optional[bool] = None,
) -> StoreItem:
    """Flip ``favorite``/``hidden`` when ``value`` is None, otherwise set it."""

    if flag not in ("favorite", "hidden"):
        raise InvalidInputError(f"Unknown item flag '{flag}'")
    column = "is_favorite" if flag == "favorite" else "is_hidden"
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the catalog")
        row = get_item_row(session, store_id, item_id)
        current = bool(getattr(row, column))
        target = (not current) if value is None else bool(value)
        if target != current:
            setattr(row, column, target)
            row.updated_by_id = actor.user_id
            session.flush()
        return load_item(session, row.id)


def toggle_favorite(store_id: str, item_id: str, actor: Actor) -> StoreItem:
    return set_item_flag(store_id, item_id, "favorite", actor)


def toggle_hidden(store_id: str, item_id: str, actor: Actor) -> StoreItem:
    return set_item_flag(store_id, item_id, "hidden", actor)


def delete_item(store_id: str, item_id: str, actor: Actor) -> None:
    """Delete a catalog item together with its shopping list rows."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the catalog")
        session.delete(get_item_row(session, store_id, item_id))
        logger.info("Deleted catalog item %s from store %s", item_id, store_id)


__all__ = [
    "name_norm",
    "load_item",
    "get_item_row",
    "resolve_location",
    "get_or_create_item_row",
    "record_usage",
    "create_or_get_item",
    "get_item",
    "search_items",
    "list_items",
    "update_item",
    "set_item_flag",
    "toggle_favorite",
    "toggle_hidden",
    "delete_item",
]
