"""Invitation lifecycle for households and stores.

An invitation exists only while it is pending: accepting, declining or retracting it
deletes the row. Acceptance inserts the membership and deletes the invitation in one
transaction.
"""

from __future__ import annotations

import logging
import secrets
from typing import List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from basket import metrics
from basket.access import MANAGE_MEMBERSHIP, MANAGE_ROLES, Role, parse_role, require_role
from basket.errors import ConflictError, ForbiddenError, NotFoundError
from basket.models.invitations import Invitation
from basket.models.users import Actor

from .membership import Member, get_member_row, member_to_model
from .models import UserORM
from .repository import session_scope
from .roles import SCOPES, ScopeTables, get_scope, require_scope, scope_role_for
from .validation import normalize_email

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
    """Opaque capability token (256 bits from the OS CSPRNG)."""

    return secrets.token_urlsafe(TOKEN_BYTES)


def _to_model(scope: ScopeTables, row, parent, inviter: Optional[UserORM]) -> Invitation:
    return Invitation.model_validate(
        {
            "id": row.id,
            "scope": scope.name,
            "scope_id": getattr(row, scope.scope_column),
            "scope_name": parent.name if parent is not None else None,
            "invited_email": row.invited_email,
            "invited_by_id": row.invited_by_id,
            "inviter_name": inviter.name if inviter is not None else None,
            "inviter_email": inviter.email if inviter is not None else None,
            "role": row.role,
            "token": row.token,
            "status": row.status,
            "created_at": row.created_at,
        }
    )


def _invitation_query(scope: ScopeTables):
    return (
        select(scope.invitation, scope.parent, UserORM)
        .join(scope.parent, scope.parent.id == scope.invitation_scope())
        .outerjoin(UserORM, UserORM.id == scope.invitation.invited_by_id)
    )


def _load(session: Session, scope: ScopeTables, row) -> Invitation:
    parent = session.get(scope.parent, getattr(row, scope.scope_column))
    inviter = session.get(UserORM, row.invited_by_id)
    return _to_model(scope, row, parent, inviter)


def _is_member_email(session: Session, scope: ScopeTables, scope_id: str, email: str) -> bool:
    found = session.execute(
        select(scope.member.id)
        .join(UserORM, UserORM.id == scope.member.user_id)
        .where(scope.member_scope() == scope_id, func.lower(UserORM.email) == email)
    ).first()
    return found is not None


def _require_email_match(row, actor: Actor) -> None:
    if row.invited_email != actor.email.strip().lower():
        metrics.AUTHZ_DENIALS.labels(kind="FORBIDDEN").inc()
        logger.warning("Invitation %s used by a different account (user %s)", row.id, actor.user_id)
        raise ForbiddenError("This invitation was sent to a different email address")


def _find_by_token(session: Session, scope: ScopeTables, token: str):
    row = session.execute(
        select(scope.invitation).where(scope.invitation.token == token)
    ).scalar_one_or_none()
    if row is None:
        raise NotFoundError("Invitation not found")
    return row


def create_invitation(
    scope_name: str,
    scope_id: str,
    email: str,
    role: Union[Role, str],
    actor: Actor,
) -> Invitation:
    """Invite ``email`` into a household or store with ``role``.

    The inviter needs editor or above and cannot grant a role above their own.
    """

    scope = get_scope(scope_name)
    invited_email = normalize_email(email)
    granted = parse_role(role, scope.roles, scope=scope.name)
    with session_scope() as session:
        inviter_role = require_scope(
            session, scope, actor.user_id, scope_id, MANAGE_MEMBERSHIP, "invite members"
        )
        if granted.rank > inviter_role.rank:
            metrics.AUTHZ_DENIALS.labels(kind="FORBIDDEN").inc()
            raise ForbiddenError(f"You cannot grant the {granted.value} role")
        if _is_member_email(session, scope, scope_id, invited_email):
            raise ConflictError(f"User is already a member of this {scope.name}")
        pending = session.execute(
            select(scope.invitation.id).where(
                scope.invitation_scope() == scope_id,
                scope.invitation.invited_email == invited_email,
            )
        ).first()
        if pending is not None:
            raise ConflictError("An invitation is already pending for this email")

        row = scope.invitation(
            invited_email=invited_email,
            invited_by_id=actor.user_id,
            role=granted.value,
            token=generate_token(),
            status="pending",
        )
        setattr(row, scope.scope_column, scope_id)
        try:
            with session.begin_nested():
                session.add(row)
                session.flush()
        except IntegrityError as exc:
            raise ConflictError("An invitation is already pending for this email") from exc

        metrics.INVITATION_EVENTS.labels(scope=scope.name, action="created").inc()
        logger.info("Created %s invitation %s for %s %s", scope.name, row.id, scope.name, scope_id)
        return _load(session, scope, row)


def accept_invitation(scope_name: str, token: str, actor: Actor) -> Member:
    """Join the invitation's scope and consume the invitation.

    Accepting while already a member succeeds without changing the existing role.
    """

    scope = get_scope(scope_name)
    with session_scope() as session:
        row = _find_by_token(session, scope, token)
        _require_email_match(row, actor)
        scope_id = getattr(row, scope.scope_column)
        member = get_member_row(session, scope, scope_id, actor.user_id)
        if member is None:
            member = scope.member(user_id=actor.user_id, role=row.role)
            setattr(member, scope.scope_column, scope_id)
            session.add(member)
        session.delete(row)
        session.flush()

        metrics.INVITATION_EVENTS.labels(scope=scope.name, action="accepted").inc()
        logger.info("Accepted %s invitation %s for user %s", scope.name, row.id, actor.user_id)
        user = session.get(UserORM, actor.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return member_to_model(scope, member, user)


def decline_invitation(scope_name: str, token: str, actor: Actor) -> None:
    scope = get_scope(scope_name)
    with session_scope() as session:
        row = _find_by_token(session, scope, token)
        _require_email_match(row, actor)
        session.delete(row)
        metrics.INVITATION_EVENTS.labels(scope=scope.name, action="declined").inc()
        logger.info("Declined %s invitation %s", scope.name, row.id)


def retract_invitation(
    scope_name: str, invitation_id: str, actor: Actor, *, scope_id: Optional[str] = None
) -> None:
    """Withdraw a pending invitation (its inviter or an owner of the scope)."""

    scope = get_scope(scope_name)
    with session_scope() as session:
        row = session.get(scope.invitation, invitation_id)
        if row is None or (scope_id is not None and getattr(row, scope.scope_column) != scope_id):
            raise NotFoundError("Invitation not found")
        if row.invited_by_id != actor.user_id:
            role = scope_role_for(session, scope, actor.user_id, getattr(row, scope.scope_column))
            if role is None:
                # outsiders learn nothing about the invitation
                metrics.AUTHZ_DENIALS.labels(kind="NOT_FOUND").inc()
                raise NotFoundError("Invitation not found")
            require_role(role, MANAGE_ROLES, resource="Invitation", action="retract invitations")
        session.delete(row)
        metrics.INVITATION_EVENTS.labels(scope=scope.name, action="retracted").inc()
        logger.info("Retracted %s invitation %s", scope.name, invitation_id)


def list_pending_for_user(email: str, scope_name: Optional[str] = None) -> List[Invitation]:
    """Pending invitations addressed to ``email`` (newest first)."""

    invited_email = normalize_email(email)
    scopes = [get_scope(scope_name)] if scope_name else list(SCOPES.values())
    results: List[Invitation] = []
    with session_scope() as session:
        for scope in scopes:
            rows = session.execute(
                _invitation_query(scope).where(scope.invitation.invited_email == invited_email)
            ).all()
            results.extend(_to_model(scope, row, parent, inviter) for row, parent, inviter in rows)
    results.sort(key=lambda invitation: invitation.created_at, reverse=True)
    return results


def list_pending_for_scope(scope_name: str, scope_id: str, actor: Actor) -> List[Invitation]:
    scope = get_scope(scope_name)
    with session_scope() as session:
        require_scope(
            session, scope, actor.user_id, scope_id, MANAGE_MEMBERSHIP, "view pending invitations"
        )
        rows = session.execute(
            _invitation_query(scope)
            .where(scope.invitation_scope() == scope_id)
            .order_by(scope.invitation.created_at.desc())
        ).all()
        return [_to_model(scope, row, parent, inviter) for row, parent, inviter in rows]


__all__ = [
    "TOKEN_BYTES",
    "generate_token",
    "create_invitation",
    "accept_invitation",
    "decline_invitation",
    "retract_invitation",
    "list_pending_for_user",
    "list_pending_for_scope",
]
