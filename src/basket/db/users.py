"""User records and registration."""

from __future__ import annotations

import hmac
import json
import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from basket.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from basket.models.users import Actor, RegistrationPolicy, User

from .models import UserORM
from .repository import session_scope
from .validation import clean_text, normalize_email

logger = logging.getLogger(__name__)


def _to_model(row: UserORM) -> User:
    return User.model_validate(
        {
            "id": row.id,
            "email": row.email,
            "name": row.name,
            "scopes": json.loads(row.scopes or "[]"),
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def register_user(
    *,
    email: str,
    name: str,
    password_hash: str,
    policy: RegistrationPolicy,
    invitation_code: Optional[str] = None,
    scopes: Iterable[str] = (),
) -> User:
    """Create an account; ``password_hash`` is produced by the auth layer.

    When ``policy`` carries an invitation code the caller must present it.
    """

    if policy.requires_code:
        supplied = (invitation_code or "").strip()
        expected = (policy.invitation_code or "").strip()
        if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Registration rejected: invalid invitation code")
            raise ForbiddenError("A valid invitation code is required to register")
    normalized_email = normalize_email(email)
    display_name = clean_text(name, field="Name")
    if not password_hash:
        raise InvalidInputError("Password hash is required")

    with session_scope() as session:
        existing = session.execute(
            select(UserORM.id).where(UserORM.email == normalized_email)
        ).first()
        if existing is not None:
            raise ConflictError("An account with this email already exists")
        row = UserORM(
            email=normalized_email,
            name=display_name,
            password_hash=password_hash,
            scopes=json.dumps(sorted(set(scopes))),
        )
        try:
            with session.begin_nested():
                session.add(row)
                session.flush()
        except IntegrityError as exc:
            raise ConflictError("An account with this email already exists") from exc
        logger.info("Registered user %s", row.id)
        return _to_model(row)


def get_user(user_id: str) -> Optional[User]:
    with session_scope() as session:
        row = session.get(UserORM, user_id)
        return _to_model(row) if row is not None else None


def get_user_by_email(email: str) -> Optional[User]:
    normalized_email = normalize_email(email)
    with session_scope() as session:
        row = session.execute(
            select(UserORM).where(UserORM.email == normalized_email)
        ).scalar_one_or_none()
        return _to_model(row) if row is not None else None


def update_user_profile(actor: Actor, *, name: str) -> User:
    """Change the actor's display name; email and password are managed by the auth layer."""

    display_name = clean_text(name, field="Name")
    with session_scope() as session:
        row = session.get(UserORM, actor.user_id)
        if row is None:
            raise NotFoundError("User not found")
        row.name = display_name
        session.flush()
        logger.info("Updated profile of user %s", row.id)
        return _to_model(row)


__all__ = ["register_user", "get_user", "get_user_by_email", "update_user_profile"]
