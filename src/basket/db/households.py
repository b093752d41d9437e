"""Household persistence helpers."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select

from basket.access import MANAGE_ROLES, Role
from basket.models.households import Household, HouseholdWithMembers
from basket.models.users import Actor

from .membership import list_members_in_session
from .models import HouseholdMemberORM, HouseholdORM
from .repository import session_scope
from .roles import HOUSEHOLD, require_household
from .validation import clean_text

logger = logging.getLogger(__name__)


def _to_model(row: HouseholdORM) -> Household:
    return Household.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "created_by_id": row.created_by_id,
            "updated_by_id": row.updated_by_id,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def create_household(name: str, actor: Actor) -> Household:
    """Create a household with the actor as its first owner."""

    household_name = clean_text(name, field="Household name")
    with session_scope() as session:
        row = HouseholdORM(name=household_name, created_by_id=actor.user_id, updated_by_id=actor.user_id)
        session.add(row)
        session.flush()
        session.add(HouseholdMemberORM(household_id=row.id, user_id=actor.user_id, role=Role.OWNER.value))
        session.flush()
        logger.info("Created household %s for user %s", row.id, actor.user_id)
        return _to_model(row)


def list_households(actor: Actor) -> List[Household]:
    with session_scope() as session:
        rows = (
            session.execute(
                select(HouseholdORM)
                .join(HouseholdMemberORM, HouseholdMemberORM.household_id == HouseholdORM.id)
                .where(HouseholdMemberORM.user_id == actor.user_id)
                .order_by(HouseholdORM.name.asc(), HouseholdORM.created_at.asc())
            )
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows]


def get_household(household_id: str, actor: Actor) -> HouseholdWithMembers:
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, Role.VIEWER, "view this household")
        row = session.get(HouseholdORM, household_id)
        members = list_members_in_session(session, HOUSEHOLD, household_id)
        return HouseholdWithMembers.model_validate(
            {**_to_model(row).model_dump(), "members": [member.model_dump() for member in members]}
        )


def rename_household(household_id: str, name: str, actor: Actor) -> Household:
    household_name = clean_text(name, field="Household name")
    with session_scope() as session:
        require_household(session, actor.user_id, household_id, MANAGE_ROLES, "rename this household")
        row = session.get(HouseholdORM, household_id)
        row.name = household_name
        row.updated_by_id = actor.user_id
        session.flush()
        logger.info("Renamed household %s", household_id)
        return _to_model(row)


def delete_household(household_id: str, actor: Actor) -> None:
    """Delete a household; its stores stay behind as private stores."""

    with session_scope() as session:
        require_household(session, actor.user_id, household_id, MANAGE_ROLES, "delete this household")
        row = session.get(HouseholdORM, household_id)
        session.delete(row)
        logger.info("Deleted household %s", household_id)


__all__ = [
    "create_household",
    "list_households",
    "get_household",
    "rename_household",
    "delete_household",
]
