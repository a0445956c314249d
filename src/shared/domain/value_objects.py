"""Immutable value objects used across orders, payments and customers.

Each value object validates and normalizes its own data on construction,
so an instance that exists is always valid.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from django.core.exceptions import ValidationError
from django.core.validators import EmailValidator
from django.utils import timezone

from shared.domain.exceptions import ValidationFailure


class InvalidValue(ValidationFailure, ValueError):
    """A value object rejected its input."""


_email_validator = EmailValidator()

EMAIL_MAX_LENGTH = 180
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
ORDER_NUMBER_PATTERN = re.compile(r"^[A-Z0-9\-]+$")
ORDER_NUMBER_MAX_LENGTH = 20


@dataclass(frozen=True)
class Email:
    value: str

    def __post_init__(self) -> None:
        normalized = str(self.value or "").strip().lower()
        if not normalized:
            raise InvalidValue("Email cannot be empty.")
        if len(normalized) > EMAIL_MAX_LENGTH:
            raise InvalidValue(
                f"Email cannot be longer than {EMAIL_MAX_LENGTH} characters."
            )
        try:
            _email_validator(normalized)
        except ValidationError:
            raise InvalidValue(f"Invalid email address: {normalized}") from None
        object.__setattr__(self, "value", normalized)

    def matches(self, other: str) -> bool:
        """Case-insensitive comparison against a raw address."""
        return self.value == str(other or "").strip().lower()

    def __str__(self) -> str:
        return self.value


def clean_name_part(value: Any, label: str) -> str:
    """Trim one part of a person name and enforce its length bounds."""
    raw = str(value or "").strip()
    if len(raw) < NAME_MIN_LENGTH:
        raise InvalidValue(f"{label} must be at least {NAME_MIN_LENGTH} characters.")
    if len(raw) > NAME_MAX_LENGTH:
        raise InvalidValue(
            f"{label} cannot be longer than {NAME_MAX_LENGTH} characters."
        )
    return raw


@dataclass(frozen=True)
class PersonName:
    first_name: str
    last_name: str

    def __post_init__(self) -> None:
        first = clean_name_part(self.first_name, "First name")
        last = clean_name_part(self.last_name, "Last name")
        object.__setattr__(self, "first_name", first)
        object.__setattr__(self, "last_name", last)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class Phone:
    value: str

    def __post_init__(self) -> None:
        raw = str(self.value or "").strip()
        normalized = re.sub(r"[^\d+]", "", raw)
        if normalized.startswith("+"):
            normalized = "+" + normalized[1:].replace("+", "")
        else:
            normalized = normalized.replace("+", "")
        if not 10 <= len(normalized) <= 20:
            raise InvalidValue("Phone number must have between 10 and 20 characters.")
        if not PHONE_PATTERN.match(normalized):
            raise InvalidValue(f"Invalid phone number: {raw}")
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    postal_code: str
    country: str
    state: Optional[str] = None

    def __post_init__(self) -> None:
        street = str(self.street or "").strip()
        city = str(self.city or "").strip()
        postal_code = str(self.postal_code or "").strip()
        country = str(self.country or "").strip().upper()
        state = str(self.state).strip() if self.state else None

        if not street or len(street) > 255:
            raise InvalidValue("Street is required and cannot exceed 255 characters.")
        if not city or len(city) > 100:
            raise InvalidValue("City is required and cannot exceed 100 characters.")
        if state is not None and len(state) > 100:
            raise InvalidValue("State cannot exceed 100 characters.")
        if not postal_code or len(postal_code) > 20:
            raise InvalidValue(
                "Postal code is required and cannot exceed 20 characters."
            )
        if len(country) != 2 or not country.isalpha():
            raise InvalidValue("Country must be a 2-letter ISO code.")

        object.__setattr__(self, "street", street)
        object.__setattr__(self, "city", city)
        object.__setattr__(self, "postal_code", postal_code)
        object.__setattr__(self, "country", country)
        object.__setattr__(self, "state", state or None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Address:
        return cls(
            street=data.get("street", ""),
            city=data.get("city", ""),
            postal_code=data.get("postal_code", ""),
            country=data.get("country", ""),
            state=data.get("state"),
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


@dataclass(frozen=True)
class OrderNumber:
    """Human-readable order identifier (``ORD-YYYYMMDD-XXXXXX``)."""

    value: str

    def __post_init__(self) -> None:
        normalized = str(self.value or "").strip().upper()
        if not normalized:
            raise InvalidValue("Order number cannot be empty.")
        if len(normalized) > ORDER_NUMBER_MAX_LENGTH:
            raise InvalidValue(
                f"Order number cannot be longer than {ORDER_NUMBER_MAX_LENGTH} "
                "characters."
            )
        if not ORDER_NUMBER_PATTERN.match(normalized):
            raise InvalidValue(
                "Order number can only contain uppercase letters, digits and "
                "hyphens."
            )
        object.__setattr__(self, "value", normalized)

    @classmethod
    def generate(cls) -> OrderNumber:
        now = timezone.now()
        return cls(f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}")

    @classmethod
    def generate_with_prefix(cls, prefix: str) -> OrderNumber:
        """``PREFIX-<unix timestamp>-<hex>``, truncated to the maximum length."""
        clean_prefix = re.sub(r"[^A-Z0-9]", "", str(prefix).upper())[:6]
        stamp = str(int(timezone.now().timestamp()))
        suffix = secrets.token_hex(2).upper()
        candidate = "-".join(part for part in (clean_prefix, stamp, suffix) if part)
        return cls(candidate[:ORDER_NUMBER_MAX_LENGTH].rstrip("-"))

    def __str__(self) -> str:
        return self.value
