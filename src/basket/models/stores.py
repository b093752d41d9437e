"""Store and collaborator models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from basket.access import Role


class Store(BaseModel):
    id: str
    name: str
    household_id: Optional[str] = None
    is_hidden: bool = False
    created_by_id: str
    updated_by_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class StoreCollaborator(BaseModel):
    id: str
    store_id: str
    user_id: str
    user_name: str
    user_email: str
    role: Role
    created_at: datetime

    model_config = ConfigDict(frozen=True)


__all__ = ["Store", "StoreCollaborator"]
