"""Who an order belongs to.

An order is owned by exactly one party: a registered customer or a guest
contact.  ``Order.party`` exposes the owner as one of the two variants below
so callers branch on the variant instead of probing nullable columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional, Union

from shared.domain.value_objects import Email, PersonName, Phone

if TYPE_CHECKING:
    from modules.customers.models import Customer


@dataclass(frozen=True)
class GuestContact:
    """Validated contact details for a guest checkout."""

    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None

    def __post_init__(self) -> None:
        name = PersonName(self.first_name, self.last_name)
        object.__setattr__(self, "email", Email(self.email).value)
        object.__setattr__(self, "first_name", name.first_name)
        object.__setattr__(self, "last_name", name.last_name)
        if self.phone is not None and str(self.phone).strip():
            object.__setattr__(self, "phone", Phone(self.phone).value)
        else:
            object.__setattr__(self, "phone", None)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class RegisteredParty:
    customer: Customer
    kind: Literal["user"] = "user"


@dataclass(frozen=True)
class GuestParty:
    contact: GuestContact
    kind: Literal["guest"] = "guest"


Party = Union[RegisteredParty, GuestParty]
