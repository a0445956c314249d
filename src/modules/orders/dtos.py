"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``OrderItemDraftDTO``: one requested line (product + quantity).
- ``OrderDraftDTO``: everything checkout needs besides the owner.
- ``GuestCustomerDTO``: contact details for a guest checkout.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from django.conf import settings
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from modules.orders.parties import GuestContact
from shared.domain.money import DEFAULT_CURRENCY, Money
from shared.domain.value_objects import Address

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderItemDraftDTO(BaseModel):
    """Immutable DTO for a single requested order line.

    The unit price is never taken from the client; the Service Layer
    snapshots it from the product catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


def default_currency() -> str:
    return getattr(settings, "DEFAULT_CURRENCY", DEFAULT_CURRENCY)


def parse_money(value: Any, currency_hint: Optional[str]) -> Money:
    """Build Money from a number/string or an ``{amount, currency}`` map."""
    if isinstance(value, Money):
        return value
    if isinstance(value, dict):
        if "amount" not in value:
            raise ValueError("Money object requires an amount.")
        currency = value.get("currency") or currency_hint or default_currency()
        return Money(value["amount"], currency)
    return Money(value, currency_hint or default_currency())


class OrderDraftDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``items`` must contain at least one item.
    - The same product may not appear twice.
    - Tax, shipping and discount parse into ``Money``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    items: List[OrderItemDraftDTO]
    currency: Optional[str] = None
    tax_amount: Optional[Money] = None
    shipping_amount: Optional[Money] = None
    discount_amount: Optional[Money] = None
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    notes: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[OrderItemDraftDTO]
    ) -> List[OrderItemDraftDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return Money.zero(str(v)).currency

    @field_validator("tax_amount", "shipping_amount", "discount_amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any, info: ValidationInfo) -> Optional[Money]:
        if v is None or v == "":
            return None
        return parse_money(v, info.data.get("currency"))

    @field_validator("billing_address", "shipping_address", mode="before")
    @classmethod
    def parse_address(cls, v: Any) -> Optional[Address]:
        if v is None or isinstance(v, Address):
            return v
        if not isinstance(v, dict):
            raise ValueError("Address must be an object.")
        return Address.from_dict(v)

    @field_validator("notes", mode="before")
    @classmethod
    def normalize_notes(cls, v: Any) -> str:
        return str(v or "").strip()

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent duplicate product IDs in the same order."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class GuestCustomerDTO(BaseModel):
    """Immutable DTO for the guest contact captured at checkout."""

    model_config = ConfigDict(frozen=True)

    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None

    @model_validator(mode="after")
    def contact_must_be_valid(self):
        self.to_contact()
        return self

    def to_contact(self) -> GuestContact:
        return GuestContact(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone,
        )
