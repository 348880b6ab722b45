# Overview: Error taxonomy shared by services and routes.

from __future__ import annotations


class ReplenishError(Exception):
    """Base class for business errors surfaced to API callers."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class ValidationError(ReplenishError, ValueError):
    """400-level input problem."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthorizationError(ReplenishError):
    """403-level: actor may not act on this branch or resource."""

    status_code = 403
    code = "AUTHORIZATION_ERROR"


class NotFoundError(ReplenishError, LookupError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ReplenishError):
    """409-level business rule conflict (e.g., request already reviewed)."""

    status_code = 409
    code = "CONFLICT"


class InsufficientStockError(ReplenishError):
    """A stock movement would take a branch quantity below zero."""

    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(self, message: str, *, item_id: str | None = None, branch_id: int | None = None,
                 available: int | None = None, requested: int | None = None):
        super().__init__(message)
        self.item_id = item_id
        self.branch_id = branch_id
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "item_id": self.item_id,
            "branch_id": self.branch_id,
            "available": self.available,
            "requested": self.requested,
        })
        return data


class StorageError(ReplenishError):
    """Backing store failure. Retryable; the prior committed state is intact."""

    status_code = 503
    code = "STORAGE_ERROR"
    retryable = True
