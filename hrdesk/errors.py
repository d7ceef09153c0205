"""Domain errors raised by the workflow services.

Every error carries a message fit for an end user and maps to one HTTP
status; the API error handler serializes them as
``{"error": <code>, "message": <text>}``.
"""

from __future__ import annotations

from typing import Any


class HRDeskError(Exception):
    """Base exception for business rule violations."""

    code = "error"
    http_status = 400

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(HRDeskError):
    """Raised when input data is malformed or out of range."""

    code = "validation_error"
    http_status = 400


class NotFoundError(HRDeskError):
    """Raised when a referenced request, employee or leave type does not exist."""

    code = "not_found"
    http_status = 404


class ForbiddenError(HRDeskError):
    """Raised when the caller does not own the entity it tries to change."""

    code = "forbidden"
    http_status = 403


class InvalidStateError(HRDeskError):
    """Raised when a transition is attempted on a request that is no longer pending."""

    code = "invalid_state"
    http_status = 409


class ConflictError(HRDeskError):
    """Raised when a write would break a one-per-key invariant."""

    code = "conflict"
    http_status = 409


class InsufficientBalanceError(HRDeskError):
    """Raised when a reservation exceeds the available leave balance."""

    code = "insufficient_balance"
    http_status = 422
