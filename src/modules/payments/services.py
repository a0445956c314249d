"""Payment service layer (Use Cases).

Keeps the local ``Payment`` mirror consistent with the gateway across
the three ways news about a payment arrives: intent creation, explicit
confirmation and signed webhooks.

Business rules enforced:
- One payment per order.  A failed payment is retried on its own gateway
  intent while the gateway still accepts it; only an intent cancelled at
  the gateway is replaced by a fresh one.  Every other payment is handed
  back unchanged.
- The gateway is called before any local row is written, inside the
  order lock, so a gateway failure leaves nothing behind.
- The order row is always locked before the payment row.
- Payment status only moves forward; stale notifications are ignored.
- Refunds accumulate through ``Payment.add_refund`` on every path.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional, Union

import structlog
from django.db import transaction

from modules.orders.constants import OrderStatus
from modules.payments.constants import (
    CANCELED_INTENT_STATUS,
    PAYABLE_ORDER_STATUSES,
    PAYMENT_FAILED_DEFAULT_REASON,
    RETRYABLE_INTENT_STATUSES,
    REUSABLE_STATUSES,
    SETTLED_STATUSES,
    PaymentStatus,
)
from modules.payments.events import (
    PaymentFailed,
    PaymentIntentCreated,
    PaymentRefunded,
    PaymentSucceeded,
)
from modules.payments.exceptions import (
    PaymentNotCompleted,
    PaymentNotFound,
    PaymentNotRefundable,
    RefundExceedsPaymentAmount,
)
from modules.payments.models import Payment
from shared.domain.exceptions import PaymentProcessingError
from shared.domain.money import Money

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.services import OrderService
    from modules.payments.dtos import WebhookEventDTO, WebhookObjectDTO
    from modules.payments.gateway.port import IntentResult, PaymentGateway
    from modules.payments.repositories.interfaces import IPaymentRepository
    from modules.payments.webhooks import WebhookVerifier

logger = structlog.get_logger(__name__)

SUCCEEDED_EVENT = "payment_intent.succeeded"
FAILED_EVENT = "payment_intent.payment_failed"
PROCESSING_EVENT = "payment_intent.processing"
CANCELED_EVENT = "payment_intent.canceled"


@dataclass(frozen=True)
class PaymentIntentOutcome:
    """Result of ``create_payment_intent``.

    ``client_secret`` is only known when a gateway intent was opened by
    this call; it is never stored.
    """

    payment: Payment
    order: Order
    client_secret: Optional[str] = None
    created: bool = False


class PaymentService:
    """Application service for payment use-cases."""

    def __init__(
        self,
        gateway: PaymentGateway,
        payment_repository: IPaymentRepository,
        order_service: OrderService,
        verifier: Optional[WebhookVerifier] = None,
    ) -> None:
        self._gateway = gateway
        self._payments = payment_repository
        self._orders = order_service
        self._verifier = verifier

    # ------------------------------------------------------------------
    # Intent creation
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_payment_intent(self, order_number: str) -> PaymentIntentOutcome:
        """Open (or reuse) the gateway intent paying for an order.

        Raises:
            OrderNotFound: order does not exist.
            PaymentProcessingError: the order is not payable or the
                gateway call failed; nothing is persisted.
        """
        order = self._orders.lock_order(order_number)
        log = logger.bind(order_number=order.order_number)

        payment = self._payments.get_by_order_for_update(order)
        if payment is not None and payment.status in REUSABLE_STATUSES:
            log.info(
                "payment.intent_reused",
                intent_id=payment.stripe_payment_intent_id,
                status=payment.status,
            )
            return PaymentIntentOutcome(payment=payment, order=order)

        self._assert_payable(order)
        attempt = _next_attempt(payment)
        if payment is not None:
            payment.order = order
            previous = self._gateway.retrieve_intent(payment.stripe_payment_intent_id)
            if previous.status in RETRYABLE_INTENT_STATUSES:
                return self._retry_intent(payment, previous, attempt)
            if previous.status != CANCELED_INTENT_STATUS:
                return self._catch_up(payment, previous)
        try:
            intent = self._gateway.create_intent(
                amount=order.total.amount_in_cents,
                currency=order.currency.lower(),
                metadata={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "customer_type": order.customer_type,
                },
                receipt_email=order.customer_email,
                description=f"Payment for order {order.order_number}",
                idempotency_key=f"order-{order.id}-payment-{attempt}",
            )
        except PaymentProcessingError:
            log.warning("payment.intent_failed", attempt=attempt)
            raise

        if payment is None:
            payment = Payment(order=order, stripe_payment_intent_id=intent.id)
        else:
            payment.reopen(intent.id)
        payment.amount = order.total
        payment.stripe_customer_id = intent.customer or ""
        payment.stripe_metadata = {**intent.metadata, "attempt": str(attempt)}
        payment.apply_gateway_status(intent.status)
        payment.add_domain_event(
            PaymentIntentCreated(
                aggregate_id=payment.id,
                order_number=order.order_number,
                intent_id=intent.id,
                amount=str(payment.amount.amount),
                currency=payment.currency,
            )
        )
        self._payments.save(payment)

        log.info(
            "payment.intent_created",
            intent_id=intent.id,
            attempt=attempt,
            amount=str(payment.amount.amount),
        )
        return PaymentIntentOutcome(
            payment=payment,
            order=order,
            client_secret=intent.client_secret,
            created=True,
        )

    def _retry_intent(
        self, payment: Payment, intent: IntentResult, attempt: int
    ) -> PaymentIntentOutcome:
        """Hand a failed payment's gateway intent back for another try.

        The intent keeps its id, so every later webhook for it still
        resolves to this payment.
        """
        payment.reopen(intent.id)
        payment.stripe_metadata = {
            **payment.stripe_metadata,
            "attempt": str(attempt),
        }
        self._payments.save(payment)
        logger.info(
            "payment.intent_retried",
            order_number=payment.order.order_number,
            intent_id=intent.id,
            attempt=attempt,
        )
        return PaymentIntentOutcome(
            payment=payment,
            order=payment.order,
            client_secret=intent.client_secret,
            created=True,
        )

    def _catch_up(self, payment: Payment, intent: IntentResult) -> PaymentIntentOutcome:
        """Record a gateway outcome that never reached us, e.g. a lost webhook."""
        order = payment.order
        if self._apply_intent(payment, intent):
            self._payments.save(payment)
            self._sync_order(payment, order)
        logger.warning(
            "payment.intent_caught_up",
            order_number=order.order_number,
            intent_id=intent.id,
            gateway_status=intent.status,
            status=payment.status,
        )
        return PaymentIntentOutcome(payment=payment, order=order)

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def confirm_payment(
        self, intent_id: str, payment_method_id: Optional[str] = None
    ) -> Payment:
        """Confirm an intent at the gateway and record the outcome.

        Already settled payments are returned without a gateway call.

        Raises:
            PaymentNotFound: no payment for *intent_id*.
            PaymentProcessingError: the gateway call failed.
            PaymentNotCompleted: the gateway did not report success; the
                resulting payment state is committed first.
        """
        log = logger.bind(intent_id=intent_id)
        with transaction.atomic():
            payment, order = self._lock(self._find(intent_id))
            if payment.status in SETTLED_STATUSES:
                log.info("payment.confirm_idempotent", status=payment.status)
                return payment

            intent = self._gateway.confirm_intent(intent_id, payment_method_id)
            changed = self._apply_intent(payment, intent)
            if changed:
                self._payments.save(payment)
                self._sync_order(payment, order)
            log.info(
                "payment.confirmed",
                gateway_status=intent.status,
                status=payment.status,
                changed=changed,
            )

        if payment.status != PaymentStatus.SUCCEEDED:
            raise PaymentNotCompleted(
                payment,
                gateway_status=intent.status,
                message=intent.failure_message,
            )
        return payment

    def _apply_intent(self, payment: Payment, intent: IntentResult) -> bool:
        if intent.status == "succeeded":
            return self._mark_succeeded(
                payment, intent.payment_method, intent.payment_method_details
            )
        if intent.failure_message or intent.failure_code:
            return self._mark_failed(
                payment,
                intent.failure_message or PAYMENT_FAILED_DEFAULT_REASON,
                intent.failure_code,
            )
        return self._move(payment, intent.status)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def handle_webhook(
        self, payload: Union[bytes, str], signature: Optional[str]
    ) -> Optional[Payment]:
        """Verify and apply a gateway webhook.

        Returns the affected payment, or ``None`` when the event was
        ignored (unhandled type or unknown intent).

        Raises:
            WebhookSignatureInvalid: signature missing or wrong.
            InvalidWebhookPayload: body is not a well-formed event.
        """
        if self._verifier is None:
            raise PaymentProcessingError("Webhook verification is not configured.")
        event = self._verifier.parse(payload, signature)
        log = logger.bind(event_id=event.id, event_type=event.type)

        if not (event.is_payment_intent_event() or event.is_charge_refunded()):
            log.info("payment.webhook_ignored", reason="unhandled_type")
            return None
        intent_id = event.object.intent_id
        if not intent_id:
            log.info("payment.webhook_ignored", reason="missing_intent")
            return None
        existing = self._payments.get_by_intent_id(intent_id)
        if existing is None:
            log.info(
                "payment.webhook_ignored", reason="unknown_intent", intent_id=intent_id
            )
            return None

        log = log.bind(intent_id=intent_id)
        with transaction.atomic():
            payment, order = self._lock(existing)
            if event.is_charge_refunded():
                self._reconcile_refund(payment, order, event.object)
                return payment

            changed = self._apply_event(payment, event)
            if not changed:
                log.info("payment.webhook_noop", status=payment.status)
                return payment

            obj = event.object
            if obj.payment_method_id:
                payment.stripe_payment_method_id = obj.payment_method_id
            if obj.metadata:
                payment.stripe_metadata = {**payment.stripe_metadata, **obj.metadata}
            self._payments.save(payment)
            self._sync_order(payment, order)
            log.info("payment.webhook_applied", status=payment.status)
        return payment

    def _apply_event(self, payment: Payment, event: WebhookEventDTO) -> bool:
        obj = event.object
        if event.type == SUCCEEDED_EVENT or obj.status == "succeeded":
            return self._mark_succeeded(
                payment, obj.payment_method_id, obj.method_details()
            )
        if event.type == FAILED_EVENT:
            message, code = obj.failure()
            return self._mark_failed(
                payment, message or PAYMENT_FAILED_DEFAULT_REASON, code
            )
        if event.type == PROCESSING_EVENT:
            return self._move(payment, "processing")
        if event.type == CANCELED_EVENT:
            return self._move(payment, "canceled")
        return self._move(payment, obj.status)

    def _reconcile_refund(
        self, payment: Payment, order: Order, charge: WebhookObjectDTO
    ) -> None:
        """Apply the part of the gateway's cumulative refund not yet recorded."""
        log = logger.bind(intent_id=payment.stripe_payment_intent_id)
        if charge.currency and charge.currency.upper() != payment.currency:
            log.warning(
                "payment.webhook_ignored",
                reason="currency_mismatch",
                currency=charge.currency,
            )
            return
        gateway_total = Money.from_cents(charge.amount_refunded or 0, payment.currency)
        if not gateway_total.is_greater_than(payment.refunded_amount):
            log.info("payment.refund_already_recorded")
            return
        if not payment.has_refundable_balance():
            log.warning(
                "payment.webhook_ignored",
                reason="not_refundable",
                status=payment.status,
            )
            return
        delta = gateway_total.subtract(payment.refunded_amount)
        self._record_refund(payment, order, delta)

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    @transaction.atomic
    def refund_payment(
        self,
        intent_id: str,
        amount: Optional[Decimal] = None,
        reason: str = "",
    ) -> Payment:
        """Refund part or all of a settled payment (staff).

        *amount* defaults to the remaining balance.

        Raises:
            PaymentNotFound: no payment for *intent_id*.
            PaymentNotRefundable: nothing left to refund.
            RefundExceedsPaymentAmount: *amount* is above the remaining
                balance; the gateway is not called.
            PaymentProcessingError: the gateway refused the refund.
        """
        payment, order = self._lock(self._find(intent_id))
        log = logger.bind(intent_id=intent_id, order_number=order.order_number)
        if not payment.has_refundable_balance():
            log.warning("payment.refund_rejected", status=payment.status)
            raise PaymentNotRefundable()

        remaining = payment.remaining_amount
        refund = remaining if amount is None else Money(amount, payment.currency)
        if refund.is_greater_than(remaining):
            log.warning(
                "payment.refund_rejected",
                requested=str(refund.amount),
                remaining=str(remaining.amount),
            )
            raise RefundExceedsPaymentAmount()

        result = self._gateway.refund(
            intent_id,
            refund.amount_in_cents,
            idempotency_key=(
                f"payment-{payment.id}-refund-"
                f"{payment.refunded_amount.amount_in_cents}-{refund.amount_in_cents}"
            ),
            reason=reason or None,
        )
        log.info(
            "payment.refund_requested", refund_id=result.id, amount=str(refund.amount)
        )
        self._record_refund(payment, order, refund)
        return payment

    def _record_refund(self, payment: Payment, order: Order, refund: Money) -> None:
        total = payment.add_refund(refund)
        fully_refunded = payment.is_fully_refunded()
        payment.add_domain_event(
            PaymentRefunded(
                aggregate_id=payment.id,
                order_number=order.order_number,
                intent_id=payment.stripe_payment_intent_id,
                amount=str(refund.amount),
                refunded_total=str(total.amount),
                currency=payment.currency,
                fully_refunded=fully_refunded,
            )
        )
        self._payments.save(payment)
        logger.info(
            "payment.refunded",
            intent_id=payment.stripe_payment_intent_id,
            amount=str(refund.amount),
            refunded_total=str(total.amount),
            fully_refunded=fully_refunded,
        )
        self._sync_order(payment, order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_payment(self, intent_id: str) -> Payment:
        """Raises ``PaymentNotFound`` when no payment has *intent_id*."""
        return self._find(intent_id)

    def get_payment_for_order(self, order: Order) -> Optional[Payment]:
        return self._payments.get_by_order(order)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _assert_payable(self, order: Order) -> None:
        if order.status not in PAYABLE_ORDER_STATUSES:
            raise PaymentProcessingError(
                f"Order {order.order_number} cannot be paid in status {order.status}."
            )
        if order.total.amount_in_cents <= 0:
            raise PaymentProcessingError(
                f"Order {order.order_number} has nothing to pay."
            )

    def _find(self, intent_id: str) -> Payment:
        payment = self._payments.get_by_intent_id(intent_id)
        if payment is None:
            raise PaymentNotFound(intent_id)
        return payment

    def _lock(self, payment: Payment) -> tuple[Payment, Order]:
        """Lock the payment's order, then the payment itself."""
        intent_id = payment.stripe_payment_intent_id
        order = self._orders.lock_order(payment.order.order_number)
        locked = self._payments.get_for_update(intent_id)
        if locked is None:
            raise PaymentNotFound(intent_id)
        locked.order = order
        return locked, order

    def _mark_succeeded(
        self,
        payment: Payment,
        payment_method_id: Optional[str],
        details: Optional[dict[str, Any]],
    ) -> bool:
        if payment.status == PaymentStatus.SUCCEEDED:
            return False
        if not payment.can_transition_to(PaymentStatus.SUCCEEDED):
            self._log_ignored(payment, PaymentStatus.SUCCEEDED)
            return False
        payment.mark_as_succeeded(payment_method_id, details)
        payment.add_domain_event(
            PaymentSucceeded(
                aggregate_id=payment.id,
                order_number=payment.order.order_number,
                intent_id=payment.stripe_payment_intent_id,
                amount=str(payment.amount.amount),
                currency=payment.currency,
            )
        )
        return True

    def _mark_failed(self, payment: Payment, reason: str, code: Optional[str]) -> bool:
        if payment.status == PaymentStatus.FAILED:
            return False
        if not payment.can_transition_to(PaymentStatus.FAILED):
            self._log_ignored(payment, PaymentStatus.FAILED)
            return False
        payment.mark_as_failed(reason, code)
        payment.add_domain_event(
            PaymentFailed(
                aggregate_id=payment.id,
                order_number=payment.order.order_number,
                intent_id=payment.stripe_payment_intent_id,
                reason=reason,
                code=code or "",
            )
        )
        return True

    def _move(self, payment: Payment, gateway_status: Optional[str]) -> bool:
        previous = payment.status
        payment.apply_gateway_status(gateway_status)
        return payment.status != previous

    def _log_ignored(self, payment: Payment, target: str) -> None:
        logger.info(
            "payment.transition_ignored",
            intent_id=payment.stripe_payment_intent_id,
            current_status=payment.status,
            target_status=target,
        )

    def _sync_order(self, payment: Payment, order: Order) -> None:
        """Carry a settled payment over to its order."""
        if payment.status == PaymentStatus.SUCCEEDED:
            if order.status == OrderStatus.PENDING:
                self._orders.apply_transition(
                    order, OrderStatus.CONFIRMED, notes="Payment succeeded"
                )
            elif order.status != OrderStatus.CONFIRMED:
                logger.warning(
                    "payment.order_not_confirmed",
                    order_number=order.order_number,
                    order_status=order.status,
                )
        elif payment.status == PaymentStatus.REFUNDED and order.can_be_refunded():
            self._orders.apply_transition(
                order, OrderStatus.REFUNDED, notes="Payment fully refunded"
            )


def _next_attempt(payment: Optional[Payment]) -> int:
    if payment is None:
        return 1
    try:
        return int(payment.stripe_metadata.get("attempt", 1)) + 1
    except (TypeError, ValueError):
        return 2


def build_payment_service() -> PaymentService:
    """Wire the service with its Django repositories and the active gateway."""
    from modules.orders.services import build_order_service
    from modules.payments.gateway import get_gateway
    from modules.payments.repositories.django_repository import PaymentDjangoRepository
    from modules.payments.webhooks import build_webhook_verifier

    return PaymentService(
        gateway=get_gateway(),
        payment_repository=PaymentDjangoRepository(),
        order_service=build_order_service(),
        verifier=build_webhook_verifier(),
    )
