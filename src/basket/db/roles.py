"""Loading role facts for the access evaluator and owner counting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Tuple, Type

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from basket.access import (
    HOUSEHOLD_ROLES,
    STORE_ROLES,
    Role,
    RoleTable,
    household_role,
    require_role,
    store_role,
)
from basket.errors import InvalidInputError

from .models import (
    HouseholdInvitationORM,
    HouseholdMemberORM,
    HouseholdORM,
    StoreCollaboratorORM,
    StoreInvitationORM,
    StoreORM,
)


@dataclass(frozen=True)
class ScopeTables:
    """Tables backing one membership scope (household members or store collaborators)."""

    name: str
    label: str
    parent: Type
    member: Type
    invitation: Type
    scope_column: str
    roles: FrozenSet[Role]

    def member_scope(self):
        return getattr(self.member, self.scope_column)

    def invitation_scope(self):
        return getattr(self.invitation, self.scope_column)


HOUSEHOLD = ScopeTables(
    name="household",
    label="Household",
    parent=HouseholdORM,
    member=HouseholdMemberORM,
    invitation=HouseholdInvitationORM,
    scope_column="household_id",
    roles=HOUSEHOLD_ROLES,
)

STORE = ScopeTables(
    name="store",
    label="Store",
    parent=StoreORM,
    member=StoreCollaboratorORM,
    invitation=StoreInvitationORM,
    scope_column="store_id",
    roles=STORE_ROLES,
)

SCOPES: Dict[str, ScopeTables] = {HOUSEHOLD.name: HOUSEHOLD, STORE.name: STORE}


def get_scope(name: str) -> ScopeTables:
    try:
        return SCOPES[name]
    except KeyError as exc:
        raise InvalidInputError(f"Unknown membership scope '{name}'") from exc


def load_role_table(
    session: Session,
    user_id: str,
    *,
    household_ids: Iterable[str] = (),
    store_ids: Iterable[str] = (),
) -> RoleTable:
    """Read every role fact for ``user_id`` relevant to the given households and stores."""

    store_id_list = list(store_ids)
    store_households: Dict[str, Optional[str]] = {}
    if store_id_list:
        rows = session.execute(
            select(StoreORM.id, StoreORM.household_id).where(StoreORM.id.in_(store_id_list))
        ).all()
        store_households = {store_id: household_id for store_id, household_id in rows}

    wanted_households = set(household_ids)
    wanted_households.update(hid for hid in store_households.values() if hid is not None)

    household_roles: Dict[Tuple[str, str], Role] = {}
    if wanted_households:
        rows = session.execute(
            select(HouseholdMemberORM.household_id, HouseholdMemberORM.role).where(
                HouseholdMemberORM.user_id == user_id,
                HouseholdMemberORM.household_id.in_(wanted_households),
            )
        ).all()
        household_roles = {(user_id, household_id): Role(role) for household_id, role in rows}

    store_roles: Dict[Tuple[str, str], Role] = {}
    if store_households:
        rows = session.execute(
            select(StoreCollaboratorORM.store_id, StoreCollaboratorORM.role).where(
                StoreCollaboratorORM.user_id == user_id,
                StoreCollaboratorORM.store_id.in_(list(store_households)),
            )
        ).all()
        store_roles = {(user_id, store_id): Role(role) for store_id, role in rows}

    return RoleTable(
        household_roles=household_roles,
        store_roles=store_roles,
        store_households=store_households,
    )


def household_role_for(session: Session, user_id: str, household_id: str) -> Optional[Role]:
    table = load_role_table(session, user_id, household_ids=[household_id])
    return household_role(table, user_id, household_id)


def store_role_for(session: Session, user_id: str, store_id: str) -> Optional[Role]:
    table = load_role_table(session, user_id, store_ids=[store_id])
    return store_role(table, user_id, store_id)


def scope_role_for(session: Session, scope: ScopeTables, user_id: str, scope_id: str) -> Optional[Role]:
    """Effective role of ``user_id`` on a household or store."""

    if scope is STORE:
        return store_role_for(session, user_id, scope_id)
    return household_role_for(session, user_id, scope_id)


def require_household(session: Session, user_id: str, household_id: str, minimum: Role, action: str) -> Role:
    return require_role(
        household_role_for(session, user_id, household_id),
        minimum,
        resource="Household",
        action=action,
    )


def require_store(session: Session, user_id: str, store_id: str, minimum: Role, action: str) -> Role:
    return require_role(
        store_role_for(session, user_id, store_id),
        minimum,
        resource="Store",
        action=action,
    )


def require_scope(
    session: Session, scope: ScopeTables, user_id: str, scope_id: str, minimum: Role, action: str
) -> Role:
    return require_role(
        scope_role_for(session, scope, user_id, scope_id),
        minimum,
        resource=scope.label,
        action=action,
    )


def count_owners(session: Session, scope: ScopeTables, scope_id: str) -> int:
    """Count direct owner rows; callers run this inside the mutating transaction."""

    return session.execute(
        select(func.count())
        .select_from(scope.member)
        .where(scope.member_scope() == scope_id, scope.member.role == Role.OWNER.value)
    ).scalar_one()


__all__ = [
    "ScopeTables",
    "HOUSEHOLD",
    "STORE",
    "SCOPES",
    "get_scope",
    "load_role_table",
    "household_role_for",
    "store_role_for",
    "scope_role_for",
    "require_household",
    "require_store",
    "require_scope",
    "count_owners",
]
