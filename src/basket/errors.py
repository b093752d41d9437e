"""Closed error taxonomy shared by every core operation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"


HTTP_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 422,
    ErrorKind.INTERNAL: 500,
}


class BasketError(Exception):
    """Base class for typed core failures; ``kind`` selects the recovery path."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        return make_error_payload(self.kind.value, self.message, self.details)


class NotFoundError(BasketError):
    kind = ErrorKind.NOT_FOUND


class ForbiddenError(BasketError):
    kind = ErrorKind.FORBIDDEN


class ConflictError(BasketError):
    kind = ErrorKind.CONFLICT


class InvalidInputError(BasketError, ValueError):
    kind = ErrorKind.VALIDATION


class InternalError(BasketError):
    kind = ErrorKind.INTERNAL


def make_error_payload(code: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


__all__ = [
    "ErrorKind",
    "HTTP_STATUS",
    "BasketError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "InvalidInputError",
    "InternalError",
    "make_error_payload",
]
