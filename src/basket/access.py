"""Access control evaluation for households and stores.

The predicates in this module are pure: they answer questions over role facts that the
caller already loaded (see :mod:`basket.db.roles`) and never raise. ``None``/``False``
means "no relationship found".

Two thresholds govern membership management:

* *manage membership* (invite, list or retract invitations): editor or above.
* *manage roles* (change roles, remove other members): owner only.

Store access takes the higher of the direct collaborator role and the role inherited
from the owning household, under ``owner > editor > viewer``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple

from basket import metrics
from basket.errors import ForbiddenError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]


ROLE_RANK: Mapping[Role, int] = {Role.VIEWER: 1, Role.EDITOR: 2, Role.OWNER: 3}

HOUSEHOLD_ROLES = frozenset({Role.OWNER, Role.EDITOR, Role.VIEWER})
STORE_ROLES = frozenset({Role.OWNER, Role.EDITOR})

MANAGE_MEMBERSHIP = Role.EDITOR
MANAGE_ROLES = Role.OWNER


def higher_role(first: Optional[Role], second: Optional[Role]) -> Optional[Role]:
    """Join of two role facts in the ``viewer < editor < owner`` lattice."""

    if first is None:
        return second
    if second is None:
        return first
    return first if first.rank >= second.rank else second


def role_at_least(role: Optional[Role], minimum: Role) -> bool:
    return role is not None and role.rank >= minimum.rank


@dataclass(frozen=True)
class RoleTable:
    """Role facts relevant to one decision.

    ``household_roles`` and ``store_roles`` are keyed by ``(user_id, scope_id)``;
    ``store_households`` maps a store to its owning household (``None`` for private stores).
    """

    household_roles: Mapping[Tuple[str, str], Role] = field(default_factory=dict)
    store_roles: Mapping[Tuple[str, str], Role] = field(default_factory=dict)
    store_households: Mapping[str, Optional[str]] = field(default_factory=dict)


def household_role(table: RoleTable, user_id: str, household_id: Optional[str]) -> Optional[Role]:
    if household_id is None:
        return None
    return table.household_roles.get((user_id, household_id))


def store_role(table: RoleTable, user_id: str, store_id: str) -> Optional[Role]:
    direct = table.store_roles.get((user_id, store_id))
    inherited = household_role(table, user_id, table.store_households.get(store_id))
    return higher_role(direct, inherited)


def can_manage_members(table: RoleTable, user_id: str, household_id: str) -> bool:
    return role_at_least(household_role(table, user_id, household_id), MANAGE_MEMBERSHIP)


def can_manage_roles(table: RoleTable, user_id: str, household_id: str) -> bool:
    return role_at_least(household_role(table, user_id, household_id), MANAGE_ROLES)


def has_access_to_store(table: RoleTable, user_id: str, store_id: str) -> bool:
    return store_role(table, user_id, store_id) is not None


def can_edit_store(table: RoleTable, user_id: str, store_id: str) -> bool:
    return role_at_least(store_role(table, user_id, store_id), Role.EDITOR)


def can_manage_store_collaborators(table: RoleTable, user_id: str, store_id: str) -> bool:
    return role_at_least(store_role(table, user_id, store_id), MANAGE_ROLES)


def require_role(
    role: Optional[Role],
    minimum: Role,
    *,
    resource: str,
    action: str,
) -> Role:
    """Translate an evaluated role into NOT_FOUND / FORBIDDEN for the caller.

    No relationship at all reads as NOT_FOUND so existence is not confirmed to
    outsiders; a visible resource with too little role reads as FORBIDDEN.
    """

    if role is None:
        metrics.AUTHZ_DENIALS.labels(kind="NOT_FOUND").inc()
        raise NotFoundError(f"{resource} not found")
    if not role_at_least(role, minimum):
        metrics.AUTHZ_DENIALS.labels(kind="FORBIDDEN").inc()
        logger.warning("Denied %s on %s for role=%s (requires %s)", action, resource, role.value, minimum.value)
        raise ForbiddenError(f"Only {minimum.value}s or above can {action}")
    return role


def parse_role(value: object, allowed: Iterable[Role], *, scope: str) -> Role:
    """Coerce user input into a role valid for ``scope``."""

    allowed_set = frozenset(allowed)
    try:
        role = value if isinstance(value, Role) else Role(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidInputError(f"Unknown role '{value}'") from exc
    if role not in allowed_set:
        names = ", ".join(sorted(r.value for r in allowed_set))
        raise InvalidInputError(f"Role '{role.value}' is not valid for a {scope}; expected one of {names}")
    return role


__all__ = [
    "Role",
    "ROLE_RANK",
    "HOUSEHOLD_ROLES",
    "STORE_ROLES",
    "MANAGE_MEMBERSHIP",
    "MANAGE_ROLES",
    "RoleTable",
    "higher_role",
    "role_at_least",
    "household_role",
    "store_role",
    "can_manage_members",
    "can_manage_roles",
    "has_access_to_store",
    "can_edit_store",
    "can_manage_store_collaborators",
    "require_role",
    "parse_role",
]
