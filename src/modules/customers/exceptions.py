"""Customer account exceptions."""

from __future__ import annotations

from shared.domain.exceptions import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    ValidationFailure,
)


class CustomerAlreadyExists(ConflictError):
    """An account with this email address already exists."""

    default_message = "An account with this email address already exists."


class CustomerNotFound(NotFoundError):
    """No customer profile exists for the given lookup."""

    default_message = "Customer profile not found."


class InactiveCustomer(ValidationFailure):
    """The customer account is disabled and cannot place orders."""

    default_message = "Customer account is inactive."


class InvalidCredentials(AccessDeniedError):
    """The password does not match the existing account."""

    default_message = "Invalid credentials for the existing account."
