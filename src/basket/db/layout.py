"""Store layout persistence: aisles, sections and their ordering."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from basket.access import Role
from basket.errors import InvalidInputError, NotFoundError
from basket.models.catalog import SortOrderUpdate, StoreAisle, StoreSection
from basket.models.users import Actor

from .models import StoreAisleORM, StoreSectionORM
from .repository import session_scope
from .roles import require_store
from .validation import clean_text

logger = logging.getLogger(__name__)

_UNSET = object()

ReorderInput = Iterable[Union[SortOrderUpdate, dict]]


def _aisle_to_model(row: StoreAisleORM) -> StoreAisle:
    return StoreAisle.model_validate(
        {
            "id": row.id,
            "store_id": row.store_id,
            "name": row.name,
            "sort_order": row.sort_order,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _section_to_model(row: StoreSectionORM) -> StoreSection:
    return StoreSection.model_validate(
        {
            "id": row.id,
            "store_id": row.store_id,
            "aisle_id": row.aisle_id,
            "name": row.name,
            "sort_order": row.sort_order,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def get_aisle_row(session: Session, store_id: str, aisle_id: str) -> StoreAisleORM:
    row = session.get(StoreAisleORM, aisle_id)
    if row is None or row.store_id != store_id:
        raise NotFoundError("Aisle not found")
    return row


def get_section_row(session: Session, store_id: str, section_id: str) -> StoreSectionORM:
    row = session.get(StoreSectionORM, section_id)
    if row is None or row.store_id != store_id:
        raise NotFoundError("Section not found")
    return row


def _next_aisle_order(session: Session, store_id: str) -> int:
    current = session.execute(
        select(func.max(StoreAisleORM.sort_order)).where(StoreAisleORM.store_id == store_id)
    ).scalar_one()
    return 0 if current is None else current + 1


def _next_section_order(session: Session, aisle_id: str) -> int:
    current = session.execute(
        select(func.max(StoreSectionORM.sort_order)).where(StoreSectionORM.aisle_id == aisle_id)
    ).scalar_one()
    return 0 if current is None else current + 1


def _list_aisles(session: Session, store_id: str) -> List[StoreAisle]:
    rows = session.execute(
        select(StoreAisleORM)
        .where(StoreAisleORM.store_id == store_id)
        .order_by(StoreAisleORM.sort_order.asc(), StoreAisleORM.created_at.asc())
    ).scalars()
    return [_aisle_to_model(row) for row in rows]


def _list_sections(session: Session, store_id: str, aisle_id: Optional[str] = None) -> List[StoreSection]:
    query = (
        select(StoreSectionORM)
        .join(StoreAisleORM, StoreAisleORM.id == StoreSectionORM.aisle_id)
        .where(StoreSectionORM.store_id == store_id)
    )
    if aisle_id is not None:
        query = query.where(StoreSectionORM.aisle_id == aisle_id)
    rows = session.execute(
        query.order_by(
            StoreAisleORM.sort_order.asc(),
            StoreSectionORM.sort_order.asc(),
            StoreSectionORM.created_at.asc(),
        )
    ).scalars()
    return [_section_to_model(row) for row in rows]


def list_aisles(store_id: str, actor: Actor) -> List[StoreAisle]:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "view this store")
        return _list_aisles(session, store_id)


def list_sections(store_id: str, actor: Actor, *, aisle_id: Optional[str] = None) -> List[StoreSection]:
    """Sections in walking order (aisle order, then section order)."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "view this store")
        if aisle_id is not None:
            get_aisle_row(session, store_id, aisle_id)
        return _list_sections(session, store_id, aisle_id)


def create_aisle(store_id: str, name: str, actor: Actor) -> StoreAisle:
    aisle_name = clean_text(name, field="Aisle name")
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        row = StoreAisleORM(
            store_id=store_id,
            name=aisle_name,
            sort_order=_next_aisle_order(session, store_id),
            created_by_id=actor.user_id,
            updated_by_id=actor.user_id,
        )
        session.add(row)
        session.flush()
        logger.info("Created aisle %s in store %s", row.id, store_id)
        return _aisle_to_model(row)


def rename_aisle(store_id: str, aisle_id: str, name: str, actor: Actor) -> StoreAisle:
    aisle_name = clean_text(name, field="Aisle name")
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        row = get_aisle_row(session, store_id, aisle_id)
        row.name = aisle_name
        row.updated_by_id = actor.user_id
        session.flush()
        return _aisle_to_model(row)


def delete_aisle(store_id: str, aisle_id: str, actor: Actor) -> None:
    """Delete an aisle with its sections; catalog items keep existing without a location."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        session.delete(get_aisle_row(session, store_id, aisle_id))
        logger.info("Deleted aisle %s from store %s", aisle_id, store_id)


def create_section(store_id: str, aisle_id: str, name: str, actor: Actor) -> StoreSection:
    section_name = clean_text(name, field="Section name")
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        get_aisle_row(session, store_id, aisle_id)
        row = StoreSectionORM(
            store_id=store_id,
            aisle_id=aisle_id,
            name=section_name,
            sort_order=_next_section_order(session, aisle_id),
            created_by_id=actor.user_id,
            updated_by_id=actor.user_id,
        )
        session.add(row)
        session.flush()
        logger.info("Created section %s in aisle %s", row.id, aisle_id)
        return _section_to_model(row)


def update_section(
    store_id: str,
    section_id: str,
    actor: Actor,
    *,
    name: str | object = _UNSET,
    aisle_id: str | object = _UNSET,
) -> StoreSection:
    """Rename a section and/or move it to the end of another aisle of the same store."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        row = get_section_row(session, store_id, section_id)
        if aisle_id is None:
            raise InvalidInputError("A section must belong to an aisle")
        if name is not _UNSET:
            row.name = clean_text(name, field="Section name")  # type: ignore[arg-type]
        if aisle_id is not _UNSET and aisle_id != row.aisle_id:
            target = get_aisle_row(session, store_id, str(aisle_id))
            row.sort_order = _next_section_order(session, target.id)
            row.aisle_id = target.id
        row.updated_by_id = actor.user_id
        session.flush()
        return _section_to_model(row)


def delete_section(store_id: str, section_id: str, actor: Actor) -> None:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        session.delete(get_section_row(session, store_id, section_id))
        logger.info("Deleted section %s from store %s", section_id, store_id)


def _parse_updates(updates: ReorderInput) -> List[SortOrderUpdate]:
    parsed: List[SortOrderUpdate] = []
    try:
        for update in updates:
            parsed.append(
                update if isinstance(update, SortOrderUpdate) else SortOrderUpdate.model_validate(update)
            )
    except ValidationError as exc:
        raise InvalidInputError("Invalid sort order update", details=exc.errors(include_url=False)) from exc
    ids = [update.id for update in parsed]
    if len(set(ids)) != len(ids):
        raise InvalidInputError("Each id may appear only once in a reorder batch")
    return parsed


def _apply_reorder(session: Session, orm_class, parsed: List[SortOrderUpdate], allowed_ids: set, label: str) -> None:
    unknown = [update.id for update in parsed if update.id not in allowed_ids]
    if unknown:
        # nothing is applied unless every id belongs to the target
        raise NotFoundError(f"{label} not found", details={"ids": unknown})
    for update in parsed:
        session.get(orm_class, update.id).sort_order = update.sort_order
    session.flush()


def reorder_aisles(store_id: str, updates: ReorderInput, actor: Actor) -> List[StoreAisle]:
    """Apply a whole batch of aisle positions atomically or none of it."""

    parsed = _parse_updates(updates)
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        allowed = set(
            session.execute(select(StoreAisleORM.id).where(StoreAisleORM.store_id == store_id)).scalars()
        )
        _apply_reorder(session, StoreAisleORM, parsed, allowed, "Aisle")
        logger.info("Reordered %d aisles in store %s", len(parsed), store_id)
        return _list_aisles(session, store_id)


def reorder_sections(
    store_id: str,
    updates: ReorderInput,
    actor: Actor,
    *,
    aisle_id: Optional[str] = None,
) -> List[StoreSection]:
    """Like :func:`reorder_aisles`; with ``aisle_id`` every section must belong to that aisle."""

    parsed = _parse_updates(updates)
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "edit the store layout")
        query = select(StoreSectionORM.id).where(StoreSectionORM.store_id == store_id)
        if aisle_id is not None:
            get_aisle_row(session, store_id, aisle_id)
            query = query.where(StoreSectionORM.aisle_id == aisle_id)
        allowed = set(session.execute(query).scalars())
        _apply_reorder(session, StoreSectionORM, parsed, allowed, "Section")
        logger.info("Reordered %d sections in store %s", len(parsed), store_id)
        return _list_sections(session, store_id, aisle_id)


__all__ = [
    "get_aisle_row",
    "get_section_row",
    "list_aisles",
    "list_sections",
    "create_aisle",
    "rename_aisle",
    "delete_aisle",
    "create_section",
    "update_section",
    "delete_section",
    "reorder_aisles",
    "reorder_sections",
]
