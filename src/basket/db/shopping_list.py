"""Shopping list persistence helpers.

Rows are stored flat; :func:`_to_model` rebuilds the catalog/idea variant. A catalog
item appears at most once per store list, and its usage counter moves only when a row
starts referencing it.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from basket.access import Role
from basket.errors import ConflictError, InvalidInputError, NotFoundError
from basket.models.shopping import ShoppingListItem, ShoppingListItemInput
from basket.models.users import Actor

from .catalog import get_item_row, get_or_create_item_row, record_usage
from .models import (
    QuantityUnitORM,
    ShoppingListItemORM,
    StoreAisleORM,
    StoreItemORM,
    StoreSectionORM,
    utc_now,
)
from .repository import session_scope
from .roles import require_store
from .validation import MAX_ITEM_NAME_LENGTH, clean_text, optional_text

logger = logging.getLogger(__name__)

_UNPLACED = 999_999


def _list_query():
    return (
        select(ShoppingListItemORM, StoreItemORM, QuantityUnitORM, StoreSectionORM, StoreAisleORM)
        .outerjoin(StoreItemORM, StoreItemORM.id == ShoppingListItemORM.store_item_id)
        .outerjoin(QuantityUnitORM, QuantityUnitORM.id == ShoppingListItemORM.unit_id)
        .outerjoin(StoreSectionORM, StoreSectionORM.id == StoreItemORM.section_id)
        .outerjoin(
            StoreAisleORM,
            StoreAisleORM.id == func.coalesce(StoreSectionORM.aisle_id, StoreItemORM.aisle_id),
        )
    )


def _to_model(
    row: ShoppingListItemORM,
    item: Optional[StoreItemORM],
    unit: Optional[QuantityUnitORM],
    section: Optional[StoreSectionORM],
    aisle: Optional[StoreAisleORM],
) -> ShoppingListItem:
    if row.is_idea:
        entry = {"kind": "idea", "name": row.idea_name}
    else:
        entry = {
            "kind": "catalog",
            "store_item_id": row.store_item_id,
            "item_name": item.name if item is not None else None,
            "qty": row.qty,
            "unit_id": row.unit_id,
            "unit_abbreviation": unit.abbreviation if unit is not None else None,
        }
    return ShoppingListItem.model_validate(
        {
            "id": row.id,
            "store_id": row.store_id,
            "entry": entry,
            "notes": row.notes,
            "is_checked": row.is_checked,
            "checked_at": row.checked_at,
            "checked_by_id": row.checked_by_id,
            "is_sample": row.is_sample,
            "is_unsure": row.is_unsure,
            "snoozed_until": row.snoozed_until,
            "aisle_id": aisle.id if aisle is not None else None,
            "section_id": section.id if section is not None else None,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def load_entry(session: Session, list_item_id: str) -> ShoppingListItem:
    return _to_model(*session.execute(_list_query().where(ShoppingListItemORM.id == list_item_id)).one())


def _get_row(session: Session, store_id: str, list_item_id: str) -> ShoppingListItemORM:
    row = session.get(ShoppingListItemORM, list_item_id)
    if row is None or row.store_id != store_id:
        raise NotFoundError("Shopping list item not found")
    return row


def _row_for_item(session: Session, store_id: str, store_item_id: str) -> Optional[ShoppingListItemORM]:
    return session.execute(
        select(ShoppingListItemORM).where(
            ShoppingListItemORM.store_id == store_id,
            ShoppingListItemORM.store_item_id == store_item_id,
        )
    ).scalar_one_or_none()


def _check_unit(session: Session, unit_id: Optional[str]) -> Optional[str]:
    if unit_id is None:
        return None
    if session.get(QuantityUnitORM, unit_id) is None:
        raise InvalidInputError(f"Unknown quantity unit '{unit_id}'")
    return unit_id


def _set_checked(row: ShoppingListItemORM, is_checked: bool, actor_id: str) -> None:
    """Record checked time and actor only on an actual transition."""

    if bool(row.is_checked) == is_checked:
        return
    row.is_checked = is_checked
    if is_checked:
        row.checked_at = utc_now()
        row.checked_by_id = actor_id
    else:
        row.checked_at = None
        row.checked_by_id = None


def _coerce_input(data: Union[ShoppingListItemInput, dict]) -> ShoppingListItemInput:
    if isinstance(data, ShoppingListItemInput):
        return data
    try:
        return ShoppingListItemInput.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError("Invalid shopping list item", details=exc.errors(include_url=False)) from exc


def _resolve_catalog_item(
    session: Session,
    data: ShoppingListItemInput,
    row: Optional[ShoppingListItemORM],
    actor_id: str,
) -> StoreItemORM:
    fields = data.model_fields_set
    if data.store_item_id is not None:
        return get_item_row(session, data.store_id, data.store_item_id)
    if "name" in fields and data.name is not None:
        item, _ = get_or_create_item_row(
            session,
            data.store_id,
            data.name,
            actor_id,
            aisle_id=data.aisle_id,
            section_id=data.section_id,
        )
        return item
    if row is not None and not row.is_idea:
        return session.get(StoreItemORM, row.store_item_id)
    if row is not None and row.idea_name:
        # promoting an idea keeps its text as the catalog name
        item, _ = get_or_create_item_row(session, data.store_id, row.idea_name, actor_id)
        return item
    raise InvalidInputError("A catalog item reference or name is required")


def _apply_common(session: Session, row: ShoppingListItemORM, data: ShoppingListItemInput, actor_id: str) -> None:
    fields = data.model_fields_set
    if "notes" in fields:
        row.notes = optional_text(data.notes, field="Notes")
    if "is_sample" in fields and data.is_sample is not None:
        row.is_sample = data.is_sample
    if "is_unsure" in fields and data.is_unsure is not None:
        row.is_unsure = data.is_unsure
    if "snoozed_until" in fields:
        row.snoozed_until = data.snoozed_until
    if "is_checked" in fields and data.is_checked is not None:
        _set_checked(row, data.is_checked, actor_id)
    row.updated_by_id = actor_id


def _new_row(data: ShoppingListItemInput, actor_id: str) -> ShoppingListItemORM:
    return ShoppingListItemORM(
        store_id=data.store_id,
        is_checked=False,
        is_sample=False,
        is_unsure=False,
        created_by_id=actor_id,
        updated_by_id=actor_id,
    )


def _upsert_idea(session: Session, data: ShoppingListItemInput, row: Optional[ShoppingListItemORM], actor_id: str):
    fields = data.model_fields_set
    if data.store_item_id is not None:
        raise InvalidInputError("An idea cannot reference a catalog item")
    if data.qty is not None or data.unit_id is not None:
        raise InvalidInputError("Ideas do not carry a quantity or unit")
    if "name" in fields or row is None:
        raw_name = data.name
    elif row.is_idea:
        raw_name = row.idea_name
    else:
        raw_name = session.get(StoreItemORM, row.store_item_id).name
    name = clean_text(raw_name, field="Idea name", max_length=MAX_ITEM_NAME_LENGTH)

    if row is None:
        row = _new_row(data, actor_id)
        session.add(row)
    row.is_idea = True
    row.store_item_id = None
    row.idea_name = name
    row.qty = None
    row.unit_id = None
    _apply_common(session, row, data, actor_id)
    session.flush()
    return row


def _upsert_catalog(session: Session, data: ShoppingListItemInput, row: Optional[ShoppingListItemORM], actor_id: str):
    fields = data.model_fields_set
    item = _resolve_catalog_item(session, data, row, actor_id)
    unit_id = _check_unit(session, data.unit_id) if "unit_id" in fields else None

    holder = _row_for_item(session, data.store_id, item.id)
    re_added = False
    if row is None and holder is not None:
        # the item is already listed: update that row instead of adding another
        row = holder
        re_added = True
    elif row is not None and holder is not None and holder.id != row.id:
        raise ConflictError("This item is already on the shopping list", details={"id": holder.id})

    gained_reference = row is None or row.store_item_id != item.id
    if row is None:
        row = _new_row(data, actor_id)
        row.store_item_id = item.id
        row.is_idea = False
        try:
            with session.begin_nested():
                session.add(row)
                session.flush()
        except IntegrityError:
            row = _row_for_item(session, data.store_id, item.id)
            if row is None:
                raise
            gained_reference = False
            re_added = True
    row.is_idea = False
    row.store_item_id = item.id
    row.idea_name = None
    if "qty" in fields:
        row.qty = data.qty
    if "unit_id" in fields:
        row.unit_id = unit_id
    _apply_common(session, row, data, actor_id)
    if re_added and data.is_checked is None:
        # adding an item again means it is needed again
        _set_checked(row, False, actor_id)
    if gained_reference:
        record_usage(item)
    session.flush()
    return row


def upsert_in_session(
    session: Session, data: ShoppingListItemInput, actor_id: str
) -> ShoppingListItemORM:
    row = _get_row(session, data.store_id, data.id) if data.id else None
    if row is None or "is_idea" in data.model_fields_set:
        is_idea = data.is_idea
    else:
        is_idea = row.is_idea
    if is_idea:
        return _upsert_idea(session, data, row, actor_id)
    return _upsert_catalog(session, data, row, actor_id)


def upsert_shopping_list_item(data: Union[ShoppingListItemInput, dict], actor: Actor) -> ShoppingListItem:
    """Create or update a list row.

    Catalog rows resolve their item by id or by name (creating it when needed); a row
    for an item already on the list is updated rather than duplicated. Fields left unset
    on an update keep their stored value.
    """

    payload = _coerce_input(data)
    with session_scope() as session:
        require_store(session, actor.user_id, payload.store_id, Role.EDITOR, "edit the shopping list")
        row = upsert_in_session(session, payload, actor.user_id)
        logger.info("Upserted shopping list item %s in store %s", row.id, payload.store_id)
        return load_entry(session, row.id)


def list_shopping_list(store_id: str, actor: Actor) -> List[ShoppingListItem]:
    """Rows in walking order (aisle, section, then insertion)."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "view the shopping list")
        rows = session.execute(
            _list_query()
            .where(ShoppingListItemORM.store_id == store_id)
            .order_by(
                func.coalesce(StoreAisleORM.sort_order, _UNPLACED).asc(),
                func.coalesce(StoreSectionORM.sort_order, _UNPLACED).asc(),
                ShoppingListItemORM.created_at.asc(),
            )
        ).all()
        return [_to_model(*columns) for columns in rows]


def toggle_checked(
    store_id: str,
    list_item_id: str,
    actor: Actor,
    is_checked: Optional[bool] = None,
) -> ShoppingListItem:
    """Flip the checked state, or set it when ``is_checked`` is given."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the shopping list")
        row = _get_row(session, store_id, list_item_id)
        target = (not row.is_checked) if is_checked is None else bool(is_checked)
        if target != bool(row.is_checked):
            _set_checked(row, target, actor.user_id)
            row.updated_by_id = actor.user_id
            session.flush()
        return load_entry(session, row.id)


def remove_item(store_id: str, list_item_id: str, actor: Actor) -> None:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the shopping list")
        session.delete(_get_row(session, store_id, list_item_id))


def delete_with_item(store_id: str, list_item_id: str, actor: Actor) -> None:
    """Remove a row and the catalog item behind it (ideas just lose the row)."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the shopping list")
        row = _get_row(session, store_id, list_item_id)
        item_id = row.store_item_id
        session.delete(row)
        session.flush()
        if item_id is not None:
            item = session.get(StoreItemORM, item_id)
            if item is not None:
                session.delete(item)
        logger.info("Deleted shopping list item %s with catalog item %s", list_item_id, item_id)


def clear_checked(store_id: str, actor: Actor) -> int:
    """Delete every checked row of the store's list; returns how many went."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the shopping list")
        result = session.execute(
            delete(ShoppingListItemORM).where(
                ShoppingListItemORM.store_id == store_id,
                ShoppingListItemORM.is_checked.is_(True),
            )
        )
        logger.info("Cleared %d checked items from store %s", result.rowcount, store_id)
        return result.rowcount


__all__ = [
    "load_entry",
    "upsert_in_session",
    "upsert_shopping_list_item",
    "list_shopping_list",
    "toggle_checked",
    "remove_item",
    "delete_with_item",
    "clear_checked",
]
