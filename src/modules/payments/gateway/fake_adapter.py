"""Configurable fake payment gateway for development and testing.

This adapter simulates Stripe payment intents in memory without any
external calls.  It can be configured at runtime to confirm with a given
status or to fail outright, and it records every call in ``calls`` so
tests can assert on what reached the gateway.

Like Stripe, repeating ``create_intent`` with the same idempotency key
returns the intent created by the first call.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional
from uuid import uuid4

from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateway.port import IntentResult, PaymentGateway, RefundResult

DEFAULT_CARD_DETAILS: dict[str, Any] = {
    "type": "card",
    "card": {"brand": "visa", "last4": "4242", "exp_month": 12, "exp_year": 2030},
}


class FakeGateway(PaymentGateway):
    """In-memory payment gateway."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.intents: dict[str, IntentResult] = {}
        self.refunded: dict[str, int] = {}
        self._by_idempotency_key: dict[str, str] = {}
        self.configure()

    def configure(
        self,
        confirm_status: str = "succeeded",
        failure_message: str = "Your card was declined.",
        failure_code: str = "card_declined",
        error: Optional[str] = None,
    ) -> None:
        """Configure gateway behaviour at runtime.

        ``confirm_status`` is the intent status ``confirm_intent`` reports;
        ``"requires_payment_method"`` carries the failure message and code.
        When ``error`` is set, every call raises ``PaymentGatewayError``.
        """
        self.confirm_status = confirm_status
        self.failure_message = failure_message
        self.failure_code = failure_code
        self.error = error

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.error:
            raise PaymentGatewayError(self.error)

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method]

    def add_intent(
        self,
        intent_id: str,
        amount: int,
        currency: str = "usd",
        status: str = "requires_payment_method",
    ) -> IntentResult:
        """Seed an intent that was opened outside this gateway instance."""
        intent = IntentResult(
            id=intent_id, status=status, amount=amount, currency=currency
        )
        self.intents[intent_id] = intent
        return intent

    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        receipt_email: Optional[str],
        description: str,
        idempotency_key: str,
    ) -> IntentResult:
        self._record(
            "create_intent",
            amount=amount,
            currency=currency,
            metadata=dict(metadata),
            receipt_email=receipt_email,
            description=description,
            idempotency_key=idempotency_key,
        )
        existing_id = self._by_idempotency_key.get(idempotency_key)
        if existing_id is not None:
            return self.intents[existing_id]

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        intent = IntentResult(
            id=intent_id,
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        self._by_idempotency_key[idempotency_key] = intent_id
        return intent

    def retrieve_intent(self, intent_id: str) -> IntentResult:
        self._record("retrieve_intent", intent_id=intent_id)
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentGatewayError(f"No such payment_intent: '{intent_id}'")
        return intent

    def set_intent_status(self, intent_id: str, status: str) -> IntentResult:
        """Move an intent as the gateway would on its own (expiry, customer action)."""
        intent = replace(self.intents[intent_id], status=status)
        self.intents[intent_id] = intent
        return intent

    def confirm_intent(
        self,
        intent_id: str,
        payment_method_id: Optional[str] = None,
    ) -> IntentResult:
        self._record(
            "confirm_intent",
            intent_id=intent_id,
            payment_method_id=payment_method_id,
        )
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentGatewayError(f"No such payment_intent: '{intent_id}'")

        method_id = payment_method_id or intent.payment_method or "pm_card_visa"
        if self.confirm_status == "succeeded":
            intent = replace(
                intent,
                status="succeeded",
                payment_method=method_id,
                payment_method_details=dict(DEFAULT_CARD_DETAILS),
                failure_message=None,
                failure_code=None,
            )
        elif self.confirm_status == "requires_payment_method":
            intent = replace(
                intent,
                status="requires_payment_method",
                payment_method=None,
                failure_message=self.failure_message,
                failure_code=self.failure_code,
            )
        else:
            intent = replace(
                intent, status=self.confirm_status, payment_method=method_id
            )
        self.intents[intent_id] = intent
        return intent

    def refund(
        self,
        intent_id: str,
        amount: int,
        idempotency_key: str,
        reason: Optional[str] = None,
    ) -> RefundResult:
        self._record(
            "refund",
            intent_id=intent_id,
            amount=amount,
            idempotency_key=idempotency_key,
            reason=reason,
        )
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentGatewayError(f"No such payment_intent: '{intent_id}'")
        already = self.refunded.get(intent_id, 0)
        if already + amount > intent.amount:
            raise PaymentGatewayError("Refund amount exceeds the captured amount.")
        self.refunded[intent_id] = already + amount
        return RefundResult(
            id=f"re_fake_{uuid4().hex[:16]}",
            status="succeeded",
            amount=amount,
            currency=intent.currency,
        )
