"""Input cleaning shared by the persistence helpers."""

from __future__ import annotations

import re
from typing import Optional

from basket.errors import InvalidInputError

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_NAME_LENGTH = 100
MAX_ITEM_NAME_LENGTH = 200
MAX_NOTES_LENGTH = 500


def clean_text(value: Optional[str], *, field: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Strip ``value`` and require 1..max_length characters."""

    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidInputError(f"{field} is required")
    if len(cleaned) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return cleaned


def optional_text(value: Optional[str], *, field: str, max_length: int = MAX_NOTES_LENGTH) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return cleaned


def normalize_email(value: Optional[str]) -> str:
    """Lower-case and validate an email address; addresses compare case-insensitively."""

    cleaned = (value or "").strip().lower()
    if not _EMAIL_PATTERN.match(cleaned) or len(cleaned) > 254:
        raise InvalidInputError("A valid email address is required")
    return cleaned


__all__ = [
    "MAX_NAME_LENGTH",
    "MAX_ITEM_NAME_LENGTH",
    "MAX_NOTES_LENGTH",
    "clean_text",
    "optional_text",
    "normalize_email",
]
