"""
Domain Errors

Every failure the ordering engine reports is an ``OrderingError`` subclass.
The HTTP layer turns them into ``ErrorResponse`` bodies using ``kind`` and
``status_code``; nothing else needs to know about HTTP.
"""

from typing import Any, Sequence

from pydantic import ValidationError


class OrderingError(Exception):
    """Base class for all ordering engine errors."""

    kind = "OrderingError"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class InvalidInput(OrderingError):
    """Malformed or missing required fields."""

    kind = "InvalidInput"
    status_code = 400

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "InvalidInput":
        return cls.from_errors(exc.errors())

    @classmethod
    def from_errors(cls, errors: Sequence[Any]) -> "InvalidInput":
        """Build from the first pydantic error, e.g. ``items.0.quantity: ...``."""
        if not errors:
            return cls("Invalid input")
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid value")
        return cls(f"{location}: {message}" if location else message)


class InvalidStatus(OrderingError):
    """Requested order status is not part of the status enumeration."""

    kind = "InvalidStatus"
    status_code = 400


class NotFound(OrderingError):
    kind = "NotFound"
    status_code = 404


class DuplicateId(OrderingError):
    kind = "DuplicateId"
    status_code = 409


class StoreError(OrderingError):
    """Underlying persistence failure. The cause is logged, not exposed."""

    kind = "StoreError"
    status_code = 500
