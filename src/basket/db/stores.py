"""Store persistence helpers: creation, sharing with households and duplication."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import or_, select

from basket.access import MANAGE_ROLES, Role
from basket.models.stores import Store
from basket.models.users import Actor

from .models import (
    HouseholdMemberORM,
    StoreAisleORM,
    StoreCollaboratorORM,
    StoreItemORM,
    StoreORM,
    StoreSectionORM,
)
from .repository import session_scope
from .roles import require_household, require_store
from .validation import clean_text

logger = logging.getLogger(__name__)


def _to_model(row: StoreORM) -> Store:
    return Store.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "household_id": row.household_id,
            "is_hidden": row.is_hidden,
            "created_by_id": row.created_by_id,
            "updated_by_id": row.updated_by_id,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def create_store(name: str, actor: Actor, *, household_id: Optional[str] = None) -> Store:
    """Create a store owned by the actor, optionally shared with a household they edit."""

    store_name = clean_text(name, field="Store name")
    with session_scope() as session:
        if household_id is not None:
            require_household(session, actor.user_id, household_id, Role.EDITOR, "add stores to this household")
        row = StoreORM(
            name=store_name,
            household_id=household_id,
            created_by_id=actor.user_id,
            updated_by_id=actor.user_id,
        )
        session.add(row)
        session.flush()
        session.add(StoreCollaboratorORM(store_id=row.id, user_id=actor.user_id, role=Role.OWNER.value))
        session.flush()
        logger.info("Created store %s for user %s", row.id, actor.user_id)
        return _to_model(row)


def list_stores(actor: Actor, *, include_hidden: bool = False) -> List[Store]:
    """Stores the actor reaches directly or through a household membership."""

    direct = select(StoreCollaboratorORM.store_id).where(StoreCollaboratorORM.user_id == actor.user_id)
    households = select(HouseholdMemberORM.household_id).where(HouseholdMemberORM.user_id == actor.user_id)
    query = select(StoreORM).where(or_(StoreORM.id.in_(direct), StoreORM.household_id.in_(households)))
    if not include_hidden:
        query = query.where(StoreORM.is_hidden.is_(False))
    with session_scope() as session:
        rows = session.execute(query.order_by(StoreORM.name.asc(), StoreORM.created_at.asc())).scalars().all()
        return [_to_model(row) for row in rows]


def get_store(store_id: str, actor: Actor) -> Store:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "view this store")
        return _to_model(session.get(StoreORM, store_id))


def rename_store(store_id: str, name: str, actor: Actor) -> Store:
    store_name = clean_text(name, field="Store name")
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "rename this store")
        row = session.get(StoreORM, store_id)
        row.name = store_name
        row.updated_by_id = actor.user_id
        session.flush()
        logger.info("Renamed store %s", store_id)
        return _to_model(row)


def set_store_hidden(store_id: str, is_hidden: bool, actor: Actor) -> Store:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.EDITOR, "change store visibility")
        row = session.get(StoreORM, store_id)
        row.is_hidden = bool(is_hidden)
        row.updated_by_id = actor.user_id
        session.flush()
        return _to_model(row)


def set_store_household(store_id: str, household_id: Optional[str], actor: Actor) -> Store:
    """Share a store with a household, or make it private again with ``None``."""

    with session_scope() as session:
        require_store(session, actor.user_id, store_id, MANAGE_ROLES, "change the store's household")
        if household_id is not None:
            require_household(session, actor.user_id, household_id, Role.EDITOR, "add stores to this household")
        row = session.get(StoreORM, store_id)
        row.household_id = household_id
        row.updated_by_id = actor.user_id
        session.flush()
        logger.info("Store %s household set to %s", store_id, household_id)
        return _to_model(row)


def delete_store(store_id: str, actor: Actor) -> None:
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, MANAGE_ROLES, "delete this store")
        session.delete(session.get(StoreORM, store_id))
        logger.info("Deleted store %s", store_id)


def duplicate_store(store_id: str, new_name: str, actor: Actor, *, include_items: bool = False) -> Store:
    """Copy a store's layout (and optionally its catalog) into a new private store.

    Shopping list rows are not copied and usage statistics start from zero.
    """

    store_name = clean_text(new_name, field="Store name")
    with session_scope() as session:
        require_store(session, actor.user_id, store_id, Role.VIEWER, "duplicate this store")
        copy = StoreORM(name=store_name, household_id=None, created_by_id=actor.user_id, updated_by_id=actor.user_id)
        session.add(copy)
        session.flush()
        session.add(StoreCollaboratorORM(store_id=copy.id, user_id=actor.user_id, role=Role.OWNER.value))

        aisle_ids: Dict[str, str] = {}
        aisles = session.execute(
            select(StoreAisleORM).where(StoreAisleORM.store_id == store_id).order_by(StoreAisleORM.sort_order)
        ).scalars().all()
        for aisle in aisles:
            new_aisle = StoreAisleORM(
                store_id=copy.id,
                name=aisle.name,
                sort_order=aisle.sort_order,
                created_by_id=actor.user_id,
                updated_by_id=actor.user_id,
            )
            session.add(new_aisle)
            session.flush()
            aisle_ids[aisle.id] = new_aisle.id

        section_ids: Dict[str, str] = {}
        sections = session.execute(
            select(StoreSectionORM).where(StoreSectionORM.store_id == store_id).order_by(StoreSectionORM.sort_order)
        ).scalars().all()
        for section in sections:
            new_section = StoreSectionORM(
                store_id=copy.id,
                aisle_id=aisle_ids[section.aisle_id],
                name=section.name,
                sort_order=section.sort_order,
                created_by_id=actor.user_id,
                updated_by_id=actor.user_id,
            )
            session.add(new_section)
            session.flush()
            section_ids[section.id] = new_section.id

        if include_items:
            items = session.execute(select(StoreItemORM).where(StoreItemORM.store_id == store_id)).scalars().all()
            for item in items:
                section_id = section_ids.get(item.section_id) if item.section_id else None
                aisle_id = aisle_ids.get(item.aisle_id) if item.aisle_id and section_id is None else None
                session.add(
                    StoreItemORM(
                        store_id=copy.id,
                        name=item.name,
                        name_norm=item.name_norm,
                        aisle_id=aisle_id,
                        section_id=section_id,
                        usage_count=0,
                        last_used_at=None,
                        is_favorite=item.is_favorite,
                        is_hidden=item.is_hidden,
                        created_by_id=actor.user_id,
                        updated_by_id=actor.user_id,
                    )
                )
        session.flush()
        logger.info("Duplicated store %s into %s (items=%s)", store_id, copy.id, include_items)
        return _to_model(copy)


__all__ = [
    "create_store",
    "list_stores",
    "get_store",
    "rename_store",
    "set_store_hidden",
    "set_store_household",
    "delete_store",
    "duplicate_store",
]
