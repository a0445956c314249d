"""Payment domain exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from shared.domain.exceptions import (
    NotFoundError,
    PaymentProcessingError,
    ValidationFailure,
)

if TYPE_CHECKING:
    from modules.payments.models import Payment


class PaymentNotFound(NotFoundError):
    """No payment exists for the given intent or order."""

    def __init__(self, intent_id: Any = None) -> None:
        self.intent_id = intent_id
        super().__init__(
            f"Payment with intent {intent_id} not found." if intent_id else None
        )


class InvalidPaymentStatus(ValidationFailure, ValueError):
    """Unknown payment status value."""


class PaymentGatewayError(PaymentProcessingError):
    """The payment gateway rejected the call or could not be reached."""


class PaymentNotRefundable(PaymentProcessingError):
    """The payment has no refundable balance."""

    default_message = "Payment cannot be refunded."


class RefundExceedsPaymentAmount(PaymentProcessingError, ValueError):
    """Refunds would add up to more than was paid."""

    default_message = "Refund amount exceeds payment amount."


class PaymentNotCompleted(PaymentProcessingError):
    """Confirmation finished without the payment succeeding.

    The payment state has already been committed when this is raised.
    """

    def __init__(
        self,
        payment: Payment,
        gateway_status: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.payment = payment
        self.gateway_status = gateway_status
        status = gateway_status or payment.status
        super().__init__(message or f"Payment was not completed (status: {status}).")


class WebhookSignatureInvalid(ValidationFailure):
    """The webhook signature header is missing or does not verify."""


class InvalidWebhookPayload(ValidationFailure):
    """The webhook body is not a usable event."""
