"""
Errors raised by the shop services.

ValidationError, NotFoundError and ConflictError abort an operation before anything is
written and are rendered by the API layer. ReconciliationWarning is only ever logged.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ShopServiceError(Exception):
    """Base class for errors surfaced to callers of the shop services."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopServiceError):
    """Raised when a required field is missing or has an invalid value."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors) or "Invalid input.")


class NotFoundError(ShopServiceError):
    """Raised when a referenced distributor or shop does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ConflictError(ShopServiceError):
    """Raised when an active shop with the same name already exists for the distributor."""

    # The mobile client expects 400 here, not 409.
    status_code = 400


class ReconciliationWarning(Warning):
    """A legacy mirror or count sync step failed after the shop record was written."""
