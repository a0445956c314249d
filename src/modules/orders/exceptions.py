"""Order domain exceptions.

Each one subclasses a kind from ``shared.domain.exceptions`` so the API
layer can map it to an HTTP status without knowing the concrete type.
"""

from __future__ import annotations

from shared.domain.exceptions import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    ValidationFailure,
)


class OrderNotFound(NotFoundError):
    """The requested order does not exist."""


class InvalidOrderStatus(ValidationFailure, ValueError):
    """Unknown status value, or a transition outside the allowed graph."""


class InvalidOrderData(ValidationFailure):
    """The order draft or the order itself is not usable for the operation."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(f"Invalid order data: {message}" if message else None)


class OrderAlreadyLinked(ConflictError):
    """A guest order was already converted to a registered customer."""


class OrderAccessDenied(AccessDeniedError):
    """The caller may not see or act on this order."""
