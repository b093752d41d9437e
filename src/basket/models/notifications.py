"""Notification badge models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class NotificationCounts(BaseModel):
    store_invitations: int = 0
    household_invitations: int = 0

    model_config = ConfigDict(frozen=True)


__all__ = ["NotificationCounts"]
