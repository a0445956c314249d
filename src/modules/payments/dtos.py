"""Payment DTOs (pydantic v2, immutable).

``WebhookEventDTO`` models the subset of a Stripe event the reconciliation
service reads.  Unknown fields are kept (``extra="allow"``) so the raw
object can still be inspected when debugging.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PAYMENT_INTENT_EVENT_PREFIX = "payment_intent."
CHARGE_REFUNDED_EVENT = "charge.refunded"


class ChargeListDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    data: List[Dict[str, Any]] = Field(default_factory=list)


class WebhookObjectDTO(BaseModel):
    """A ``payment_intent`` or ``charge`` object inside an event."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: Optional[str] = None
    object: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[int] = None
    amount_refunded: Optional[int] = None
    currency: Optional[str] = None
    payment_intent: Optional[Any] = None
    payment_method: Optional[Any] = None
    payment_method_details: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    last_payment_error: Optional[Dict[str, Any]] = None
    charges: Optional[ChargeListDTO] = None
    latest_charge: Optional[Any] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def metadata_or_empty(cls, v: Any) -> Dict[str, Any]:
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("metadata must be an object.")
        return dict(v)

    @property
    def payment_method_id(self) -> Optional[str]:
        return _object_id(self.payment_method)

    @property
    def intent_id(self) -> Optional[str]:
        """Intent id for both intent objects and charge objects."""
        if self.object == "charge":
            return _object_id(self.payment_intent)
        return self.id

    def method_details(self) -> Optional[Dict[str, Any]]:
        """``payment_method_details`` of the first charge, when present."""
        if self.charges is not None and self.charges.data:
            details = self.charges.data[0].get("payment_method_details")
            if details:
                return dict(details)
        if isinstance(self.latest_charge, dict):
            details = self.latest_charge.get("payment_method_details")
            if details:
                return dict(details)
        return None

    def failure(self) -> tuple[Optional[str], Optional[str]]:
        error = self.last_payment_error or {}
        return error.get("message"), error.get("code")


class WebhookDataDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    object: WebhookObjectDTO


class WebhookEventDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    type: str
    data: WebhookDataDTO

    @property
    def object(self) -> WebhookObjectDTO:
        return self.data.object

    def is_payment_intent_event(self) -> bool:
        return self.type.startswith(PAYMENT_INTENT_EVENT_PREFIX)

    def is_charge_refunded(self) -> bool:
        return self.type == CHARGE_REFUNDED_EVENT


class ConfirmPaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    payment_method_id: Optional[str] = None

    @field_validator("payment_method_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip() or None


class RefundDTO(BaseModel):
    """Admin refund request; ``amount`` defaults to the remaining balance."""

    model_config = ConfigDict(frozen=True)

    amount: Optional[Decimal] = None
    reason: str = ""

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Refund amount must be greater than zero.")
        return v


def _object_id(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("id")
    return value or None
