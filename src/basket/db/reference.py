"""Reference data: quantity units and key/value application settings."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from basket.config import get_settings
from basket.models.shopping import QuantityUnit
from basket.models.users import RegistrationPolicy

from .models import AppSettingORM, QuantityUnitORM
from .repository import session_scope
from .validation import clean_text

logger = logging.getLogger(__name__)

REGISTRATION_INVITATION_CODE = "REGISTRATION_INVITATION_CODE"

DEFAULT_QUANTITY_UNITS: List[Dict[str, object]] = [
    {"id": "unit", "name": "Unit", "abbreviation": "unit", "sort_order": 1, "category": "count"},
    {"id": "lb", "name": "Pound", "abbreviation": "lb", "sort_order": 2, "category": "weight"},
    {"id": "oz", "name": "Ounce", "abbreviation": "oz", "sort_order": 3, "category": "weight"},
    {"id": "kg", "name": "Kilogram", "abbreviation": "kg", "sort_order": 4, "category": "weight"},
    {"id": "g", "name": "Gram", "abbreviation": "g", "sort_order": 5, "category": "weight"},
    {"id": "gal", "name": "Gallon", "abbreviation": "gal", "sort_order": 6, "category": "volume"},
    {"id": "qt", "name": "Quart", "abbreviation": "qt", "sort_order": 7, "category": "volume"},
    {"id": "pt", "name": "Pint", "abbreviation": "pt", "sort_order": 8, "category": "volume"},
    {"id": "cup", "name": "Cup", "abbreviation": "cup", "sort_order": 9, "category": "volume"},
    {"id": "fl-oz", "name": "Fluid Ounce", "abbreviation": "fl oz", "sort_order": 10, "category": "volume"},
    {"id": "tbsp", "name": "Tablespoon", "abbreviation": "tbsp", "sort_order": 11, "category": "volume"},
    {"id": "tsp", "name": "Teaspoon", "abbreviation": "tsp", "sort_order": 12, "category": "volume"},
    {"id": "l", "name": "Liter", "abbreviation": "L", "sort_order": 13, "category": "volume"},
    {"id": "ml", "name": "Milliliter", "abbreviation": "mL", "sort_order": 14, "category": "volume"},
]


def seed_quantity_units(session: Session) -> int:
    """Insert any missing default units; returns how many were added."""

    existing = set(session.execute(select(QuantityUnitORM.id)).scalars())
    added = 0
    for unit in DEFAULT_QUANTITY_UNITS:
        if unit["id"] in existing:
            continue
        session.add(QuantityUnitORM(**unit))
        added += 1
    if added:
        logger.info("Seeded %d quantity units", added)
    return added


def _unit_to_model(row: QuantityUnitORM) -> QuantityUnit:
    return QuantityUnit.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "abbreviation": row.abbreviation,
            "sort_order": row.sort_order,
            "category": row.category,
        }
    )


def list_quantity_units() -> List[QuantityUnit]:
    with session_scope() as session:
        rows = session.execute(
            select(QuantityUnitORM).order_by(QuantityUnitORM.sort_order.asc())
        ).scalars()
        return [_unit_to_model(row) for row in rows]


def get_setting(key: str) -> Optional[str]:
    with session_scope() as session:
        row = session.get(AppSettingORM, key)
        return row.value if row is not None else None


def set_setting(key: str, value: Optional[str]) -> None:
    """Store ``value`` under ``key``; ``None`` or blank deletes the setting."""

    key = clean_text(key, field="Setting key", max_length=128)
    with session_scope() as session:
        row = session.get(AppSettingORM, key)
        if value is None or not value.strip():
            if row is not None:
                session.delete(row)
                logger.info("Cleared app setting %s", key)
            return
        if row is None:
            session.add(AppSettingORM(key=key, value=value.strip()))
        else:
            row.value = value.strip()
        logger.info("Updated app setting %s", key)


def list_settings() -> Dict[str, str]:
    with session_scope() as session:
        rows = session.execute(select(AppSettingORM).order_by(AppSettingORM.key)).scalars()
        return {row.key: row.value for row in rows}


def registration_policy() -> RegistrationPolicy:
    """Read the registration rules once, for the caller to pass along explicitly."""

    code = get_setting(REGISTRATION_INVITATION_CODE)
    if code is None:
        code = get_settings().registration_invitation_code
    return RegistrationPolicy(invitation_code=code)


__all__ = [
    "REGISTRATION_INVITATION_CODE",
    "DEFAULT_QUANTITY_UNITS",
    "seed_quantity_units",
    "list_quantity_units",
    "get_setting",
    "set_setting",
    "list_settings",
    "registration_policy",
]
