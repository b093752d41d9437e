"""Invitation models for household membership and store collaboration."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from basket.access import Role

InvitationScope = Literal["household", "store"]


class Invitation(BaseModel):
    """Pending invitation; accepted, declined and retracted invitations no longer exist."""

    id: str
    scope: InvitationScope
    scope_id: str
    scope_name: Optional[str] = None
    invited_email: str
    invited_by_id: str
    inviter_name: Optional[str] = None
    inviter_email: Optional[str] = None
    role: Role
    token: str
    status: Literal["pending"] = "pending"
    created_at: datetime

    model_config = ConfigDict(frozen=True)


__all__ = ["Invitation", "InvitationScope"]
