"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between ``FakeGateway`` (dev/test) and
``StripeGateway`` (production) without changing any domain or
application code.

Amounts cross this boundary in minor units (cents) with lowercase ISO
currency codes, the way Stripe expects them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class IntentResult:
    """Snapshot of a gateway payment intent after a call."""

    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    payment_method: Optional[str] = None
    customer: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    payment_method_details: Optional[dict[str, Any]] = None
    failure_message: Optional[str] = None
    failure_code: Optional[str] = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund request."""

    id: str
    status: str
    amount: int
    currency: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface.

    Implementations raise ``PaymentGatewayError`` for every failed call.
    """

    @abstractmethod
    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        receipt_email: Optional[str],
        description: str,
        idempotency_key: str,
    ) -> IntentResult:
        """Open a payment intent for *amount* minor units."""
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> IntentResult:
        """Current state of an intent, including its client secret."""
        ...

    @abstractmethod
    def confirm_intent(
        self,
        intent_id: str,
        payment_method_id: Optional[str] = None,
    ) -> IntentResult:
        """Confirm an intent, optionally attaching a payment method."""
        ...

    @abstractmethod
    def refund(
        self,
        intent_id: str,
        amount: int,
        idempotency_key: str,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Refund *amount* minor units of a captured intent."""
        ...
