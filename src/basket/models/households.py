"""Household and membership models."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from basket.access import Role


class Household(BaseModel):
    id: str
    name: str
    created_by_id: str
    updated_by_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class HouseholdMember(BaseModel):
    """Membership row joined with the member's user details."""

    id: str
    household_id: str
    user_id: str
    user_name: str
    user_email: str
    role: Role
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class HouseholdWithMembers(Household):
    members: List[HouseholdMember] = Field(default_factory=list)


__all__ = ["Household", "HouseholdMember", "HouseholdWithMembers"]
