"""Customer DTOs (pydantic v2, immutable).

Field validators run the shared value objects, so a DTO that exists
already carries a normalized email, name and phone.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from shared.domain.value_objects import Email, Phone, clean_name_part

PASSWORD_MIN_LENGTH = 8


def _check_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
        )
    return value


class RegisterCustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    first_name: str
    last_name: str
    password: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return Email(v).value

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return Phone(v).value

    @field_validator("first_name", "last_name")
    @classmethod
    def normalize_name(cls, v: str, info: ValidationInfo) -> str:
        return clean_name_part(v, info.field_name.replace("_", " ").capitalize())


class GuestAccountDTO(BaseModel):
    """Account details for turning a guest order into a registered account.

    Missing names fall back to the names stored on the guest order.
    """

    model_config = ConfigDict(frozen=True)

    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None
