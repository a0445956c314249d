"""Stripe payment gateway adapter.

Wraps ``stripe.StripeClient`` with an explicit HTTP timeout and a bounded
number of network retries.  Every ``stripe.StripeError`` is re-raised as
``PaymentGatewayError``; Stripe objects are flattened into the port's
plain dataclasses before they leave this module.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import stripe
import structlog

from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateway.port import IntentResult, PaymentGateway, RefundResult

logger = structlog.get_logger(__name__)

GATEWAY_ERROR_MESSAGE = "Payment gateway request failed."


class StripeGateway(PaymentGateway):
    """Production gateway backed by the Stripe API."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        max_network_retries: int = 2,
        client: Optional[stripe.StripeClient] = None,
    ) -> None:
        if client is None and not api_key:
            raise PaymentGatewayError("Stripe secret key is not configured.")
        self._client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=max_network_retries,
        )

    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        receipt_email: Optional[str],
        description: str,
        idempotency_key: str,
    ) -> IntentResult:
        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "description": description,
            "automatic_payment_methods": {"enabled": True},
        }
        if receipt_email:
            params["receipt_email"] = receipt_email
        try:
            intent = self._client.payment_intents.create(
                params=params,
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as exc:
            raise self._gateway_error("create_intent", exc) from exc
        return _intent_result(intent)

    def retrieve_intent(self, intent_id: str) -> IntentResult:
        try:
            intent = self._client.payment_intents.retrieve(intent_id)
        except stripe.StripeError as exc:
            raise self._gateway_error("retrieve_intent", exc) from exc
        return _intent_result(intent)

    def confirm_intent(
        self,
        intent_id: str,
        payment_method_id: Optional[str] = None,
    ) -> IntentResult:
        params: dict[str, Any] = {"expand": ["latest_charge"]}
        if payment_method_id:
            params["payment_method"] = payment_method_id
        try:
            intent = self._client.payment_intents.confirm(intent_id, params=params)
        except stripe.CardError as exc:
            # A declined card still leaves a readable intent behind.
            intent = _error_intent(exc)
            if intent is None:
                raise self._gateway_error("confirm_intent", exc) from exc
        except stripe.StripeError as exc:
            raise self._gateway_error("confirm_intent", exc) from exc
        return _intent_result(intent)

    def refund(
        self,
        intent_id: str,
        amount: int,
        idempotency_key: str,
        reason: Optional[str] = None,
    ) -> RefundResult:
        params: dict[str, Any] = {"payment_intent": intent_id, "amount": amount}
        if reason:
            params["metadata"] = {"reason": reason}
        try:
            refund = self._client.refunds.create(
                params=params,
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as exc:
            raise self._gateway_error("refund", exc) from exc
        return RefundResult(
            id=refund["id"],
            status=str(refund.get("status") or ""),
            amount=int(refund.get("amount") or 0),
            currency=str(refund.get("currency") or ""),
        )

    def _gateway_error(
        self, operation: str, exc: stripe.StripeError
    ) -> PaymentGatewayError:
        logger.warning(
            "payment.gateway_error",
            operation=operation,
            error_type=type(exc).__name__,
            stripe_code=getattr(exc, "code", None),
            http_status=getattr(exc, "http_status", None),
        )
        message = getattr(exc, "user_message", None) or GATEWAY_ERROR_MESSAGE
        return PaymentGatewayError(message)


def _plain(value: Any) -> Any:
    """Convert nested Stripe objects into plain JSON-compatible data."""
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


def _object_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value.get("id")


def _charge_details(intent: Any) -> Optional[dict[str, Any]]:
    latest_charge = intent.get("latest_charge")
    if latest_charge is not None and not isinstance(latest_charge, str):
        details = latest_charge.get("payment_method_details")
        if details:
            return _plain(details)
    charges = intent.get("charges")
    if charges and charges.get("data"):
        details = charges["data"][0].get("payment_method_details")
        if details:
            return _plain(details)
    return None


def _error_intent(exc: stripe.StripeError) -> Any:
    error = getattr(exc, "error", None)
    if error is None:
        return None
    return getattr(error, "payment_intent", None)


def _intent_result(intent: Any) -> IntentResult:
    error = intent.get("last_payment_error") or {}
    return IntentResult(
        id=intent["id"],
        status=str(intent.get("status") or ""),
        amount=int(intent.get("amount") or 0),
        currency=str(intent.get("currency") or ""),
        client_secret=intent.get("client_secret"),
        payment_method=_object_id(intent.get("payment_method")),
        customer=_object_id(intent.get("customer")),
        metadata=_plain(intent.get("metadata")) or {},
        payment_method_details=_charge_details(intent),
        failure_message=error.get("message"),
        failure_code=error.get("code"),
    )
