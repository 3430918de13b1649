from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    category = "domain"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"category": self.category, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    category = "validation"


class AuthorizationError(DomainError):
    """Raised when the acting user lacks permission for an action."""

    category = "authorization"


class ConflictError(DomainError):
    """Raised when the current state of a record does not allow the action."""

    category = "conflict"


class NotFoundError(DomainError):
    category = "not_found"
