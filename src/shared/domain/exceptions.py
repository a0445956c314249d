"""Domain error taxonomy shared by every bounded context.

Module-specific exceptions subclass one of these kinds.  The API layer maps
a kind to its HTTP status through ``status_code``; services and models never
deal with HTTP directly.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for expected, caller-facing business errors."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DomainError):
    status_code = 404
    default_message = "Resource not found."


class ValidationFailure(DomainError):
    status_code = 400
    default_message = "Invalid data."


class ConflictError(DomainError):
    status_code = 409
    default_message = "Conflicting state."


class AccessDeniedError(DomainError):
    status_code = 403
    default_message = "Access denied."


class PaymentProcessingError(DomainError):
    status_code = 402
    default_message = "Payment processing failed."
