"""Pending invitation counts for badge display."""

from __future__ import annotations

from sqlalchemy import func, select

from basket.models.notifications import NotificationCounts

from .models import HouseholdInvitationORM, StoreInvitationORM
from .repository import session_scope
from .validation import normalize_email


def get_notification_counts(email: str) -> NotificationCounts:
    invited_email = normalize_email(email)
    with session_scope() as session:
        store_count = session.execute(
            select(func.count())
            .select_from(StoreInvitationORM)
            .where(StoreInvitationORM.invited_email == invited_email)
        ).scalar_one()
        household_count = session.execute(
            select(func.count())
            .select_from(HouseholdInvitationORM)
            .where(HouseholdInvitationORM.invited_email == invited_email)
        ).scalar_one()
    return NotificationCounts(store_invitations=store_count, household_invitations=household_count)


__all__ = ["get_notification_counts"]
