"""User and actor identity models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Registered account (password hash never leaves the persistence layer)."""

    id: str
    email: str
    name: str
    scopes: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class Actor(BaseModel):
    """Already-authenticated identity performing an operation."""

    user_id: str = Field(min_length=1)
    email: str = Field(min_length=3, max_length=254)

    model_config = ConfigDict(frozen=True)


class RegistrationPolicy(BaseModel):
    """Registration rules read once per request from the settings store."""

    invitation_code: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def requires_code(self) -> bool:
        return bool(self.invitation_code and self.invitation_code.strip())


__all__ = ["User", "Actor", "RegistrationPolicy"]
