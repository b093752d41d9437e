"""Membership and role mutations for household members and store collaborators.

Both scopes share one rule set: only owners change roles or remove others, nobody
changes or removes themselves through this path, and the last direct owner can be
neither demoted nor removed. The owner count is read inside the same ``BEGIN IMMEDIATE``
transaction as the mutation, so two concurrent demotions cannot both observe two owners.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from sqlalchemy import case, select
from sqlalchemy.orm import Session

from basket import metrics
from basket.access import MANAGE_ROLES, Role, parse_role
from basket.errors import ConflictError, ForbiddenError, NotFoundError
from basket.models.households import HouseholdMember
from basket.models.stores import StoreCollaborator
from basket.models.users import Actor

from .models import UserORM
from .repository import session_scope
from .roles import HOUSEHOLD, ScopeTables, count_owners, get_scope, require_scope

logger = logging.getLogger(__name__)

Member = Union[HouseholdMember, StoreCollaborator]


def member_to_model(scope: ScopeTables, row, user: UserORM) -> Member:
    payload = {
        "id": row.id,
        scope.scope_column: getattr(row, scope.scope_column),
        "user_id": row.user_id,
        "user_name": user.name,
        "user_email": user.email,
        "role": row.role,
        "created_at": row.created_at,
    }
    model = HouseholdMember if scope is HOUSEHOLD else StoreCollaborator
    return model.model_validate(payload)


def get_member_row(session: Session, scope: ScopeTables, scope_id: str, user_id: str):
    return session.execute(
        select(scope.member).where(scope.member_scope() == scope_id, scope.member.user_id == user_id)
    ).scalar_one_or_none()


def list_members_in_session(session: Session, scope: ScopeTables, scope_id: str) -> List[Member]:
    role_order = case(
        (scope.member.role == Role.OWNER.value, 0),
        (scope.member.role == Role.EDITOR.value, 1),
        else_=2,
    )
    rows = session.execute(
        select(scope.member, UserORM)
        .join(UserORM, UserORM.id == scope.member.user_id)
        .where(scope.member_scope() == scope_id)
        .order_by(role_order, scope.member.created_at.asc())
    ).all()
    return [member_to_model(scope, row, user) for row, user in rows]


def list_members(scope_name: str, scope_id: str, actor: Actor) -> List[Member]:
    """Members (households) or collaborators (stores), owners first."""

    scope = get_scope(scope_name)
    with session_scope() as session:
        require_scope(session, scope, actor.user_id, scope_id, Role.VIEWER, "view members")
        return list_members_in_session(session, scope, scope_id)


def _reject_self(actor: Actor, target_user_id: str, message: str) -> None:
    if target_user_id == actor.user_id:
        metrics.AUTHZ_DENIALS.labels(kind="FORBIDDEN").inc()
        raise ForbiddenError(message)


def _guard_last_owner(session: Session, scope: ScopeTables, scope_id: str, row) -> None:
    if row.role == Role.OWNER.value and count_owners(session, scope, scope_id) <= 1:
        raise ConflictError(
            f"Cannot remove the last owner of this {scope.name}",
            details={"scope": scope.name, "scope_id": scope_id},
        )


def set_role(
    scope_name: str,
    scope_id: str,
    target_user_id: str,
    new_role: Union[Role, str],
    actor: Actor,
) -> Member:
    """Change another member's role; demoting the last owner fails with CONFLICT."""

    scope = get_scope(scope_name)
    role = parse_role(new_role, scope.roles, scope=scope.name)
    with session_scope() as session:
        require_scope(session, scope, actor.user_id, scope_id, MANAGE_ROLES, "change member roles")
        _reject_self(actor, target_user_id, "You cannot change your own role")
        row = get_member_row(session, scope, scope_id, target_user_id)
        if row is None:
            raise NotFoundError("Member not found")
        if row.role != role.value:
            if role is not Role.OWNER:
                _guard_last_owner(session, scope, scope_id, row)
            previous = row.role
            row.role = role.value
            session.flush()
            logger.info(
                "Changed %s %s role for user %s: %s -> %s",
                scope.name,
                scope_id,
                target_user_id,
                previous,
                role.value,
            )
        user = session.get(UserORM, row.user_id)
        return member_to_model(scope, row, user)


def remove_member(scope_name: str, scope_id: str, target_user_id: str, actor: Actor) -> None:
    """Remove another member; removing the last owner fails with CONFLICT."""

    scope = get_scope(scope_name)
    with session_scope() as session:
        require_scope(session, scope, actor.user_id, scope_id, MANAGE_ROLES, "remove members")
        _reject_self(actor, target_user_id, "You cannot remove yourself; leave instead")
        row = get_member_row(session, scope, scope_id, target_user_id)
        if row is None:
            raise NotFoundError("Member not found")
        _guard_last_owner(session, scope, scope_id, row)
        session.delete(row)
        logger.info("Removed user %s from %s %s", target_user_id, scope.name, scope_id)


def leave(scope_name: str, scope_id: str, actor: Actor) -> None:
    """Remove the actor's own membership row."""

    scope = get_scope(scope_name)
    with session_scope() as session:
        row = get_member_row(session, scope, scope_id, actor.user_id)
        if row is None:
            raise NotFoundError(f"{scope.label} not found")
        _guard_last_owner(session, scope, scope_id, row)
        session.delete(row)
        logger.info("User %s left %s %s", actor.user_id, scope.name, scope_id)


def get_role(scope_name: str, scope_id: str, user_id: str) -> Optional[Role]:
    """Direct (non-inherited) role of ``user_id``, if any."""

    scope = get_scope(scope_name)
    with session_scope() as session:
        row = get_member_row(session, scope, scope_id, user_id)
        return Role(row.role) if row is not None else None


def owner_count(scope_name: str, scope_id: str) -> int:
    scope = get_scope(scope_name)
    with session_scope() as session:
        return count_owners(session, scope, scope_id)


__all__ = [
    "Member",
    "member_to_model",
    "get_member_row",
    "list_members_in_session",
    "list_members",
    "set_role",
    "remove_member",
    "leave",
    "get_role",
    "owner_count",
]
