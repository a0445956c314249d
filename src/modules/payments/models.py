"""Payment model: the local mirror of one gateway payment intent.

Exactly one payment exists per order.  Amounts share a single
``currency`` column and are exposed as ``Money``.  Refunds only ever
accumulate through ``add_refund``, which keeps ``refunded_amount`` within
``amount``.  ``apply_gateway_status`` never moves a payment backwards, so
late or duplicated gateway notifications cannot undo a settled state.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import structlog
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.payments.constants import (
    GATEWAY_METHOD_MAP,
    GATEWAY_STATUS_MAP,
    PAYMENT_TRANSITIONS,
    PaymentMethod,
    PaymentStatus,
)
from modules.payments.exceptions import (
    InvalidPaymentStatus,
    RefundExceedsPaymentAmount,
)
from shared.domain.events import DomainEventMixin
from shared.domain.money import DEFAULT_CURRENCY, CurrencyMismatch, InvalidMoney, Money

logger = structlog.get_logger(__name__)

_STATUS_TIMESTAMPS: dict[str, str] = {
    PaymentStatus.SUCCEEDED: "paid_at",
    PaymentStatus.FAILED: "failed_at",
    PaymentStatus.REFUNDED: "refunded_at",
    PaymentStatus.PARTIALLY_REFUNDED: "refunded_at",
}


def parse_payment_status(value: Any) -> PaymentStatus:
    try:
        return PaymentStatus(str(value).strip().lower())
    except ValueError:
        raise InvalidPaymentStatus(f"Invalid payment status: {value}") from None


class Payment(DomainEventMixin, BaseModel):
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment",
    )
    stripe_payment_intent_id = models.CharField(max_length=255, unique=True)
    stripe_payment_method_id = models.CharField(max_length=255, blank=True, default="")
    stripe_customer_id = models.CharField(max_length=255, blank=True, default="")

    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    amount_value = models.DecimalField(max_digits=12, decimal_places=2)
    refunded_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True,
        default="",
    )
    stripe_metadata = models.JSONField(default=dict, blank=True)
    payment_method_details = models.JSONField(default=dict, blank=True)
    failure_reason = models.TextField(blank=True, default="")
    failure_code = models.CharField(max_length=100, blank=True, default="")

    paid_at = models.DateTimeField(null=True, blank=True, default=None)
    failed_at = models.DateTimeField(null=True, blank=True, default=None)
    refunded_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "payments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="payments_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount_value__gte=0),
                name="payments_amount_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(refunded_value__lte=models.F("amount_value")),
                name="payments_refund_within_amount",
            ),
        ]

    # ------------------------------------------------------------------
    # Money
    # ------------------------------------------------------------------

    @property
    def amount(self) -> Money:
        return Money(self.amount_value, self.currency)

    @amount.setter
    def amount(self, value: Money) -> None:
        self.currency = value.currency
        self.amount_value = value.amount

    @property
    def refunded_amount(self) -> Money:
        return Money(self.refunded_value, self.currency)

    @property
    def remaining_amount(self) -> Money:
        return self.amount.subtract(self.refunded_amount)

    def is_fully_refunded(self) -> bool:
        return not self.refunded_amount.is_less_than(self.amount)

    def is_partially_refunded(self) -> bool:
        return self.refunded_amount.is_positive() and not self.is_fully_refunded()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status(self, value: Any) -> PaymentStatus:
        """Assign a status and apply its entry stamp (set once)."""
        status = parse_payment_status(value)
        self.status = status
        stamp_field = _STATUS_TIMESTAMPS.get(status)
        if stamp_field is not None and getattr(self, stamp_field) is None:
            setattr(self, stamp_field, timezone.now())
        return status

    def can_transition_to(self, value: str) -> bool:
        return value in PAYMENT_TRANSITIONS.get(self.status, set())

    def accepts(self, value: str) -> bool:
        """True when moving to *value* is not a regression."""
        return value == self.status or self.can_transition_to(value)

    def can_be_refunded(self) -> bool:
        return self.status == PaymentStatus.SUCCEEDED and not self.is_fully_refunded()

    def has_refundable_balance(self) -> bool:
        return (
            self.status
            in (PaymentStatus.SUCCEEDED, PaymentStatus.PARTIALLY_REFUNDED)
            and self.remaining_amount.is_positive()
        )

    def mark_as_succeeded(
        self,
        payment_method_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.set_status(PaymentStatus.SUCCEEDED)
        if payment_method_id:
            self.stripe_payment_method_id = payment_method_id
        if details:
            self.payment_method_details = details
            method = GATEWAY_METHOD_MAP.get(str(details.get("type", "")))
            if method:
                self.payment_method = method

    def mark_as_failed(self, reason: str, code: Optional[str] = None) -> None:
        self.set_status(PaymentStatus.FAILED)
        self.failure_reason = reason
        if code:
            self.failure_code = code

    def reopen(self, intent_id: str) -> None:
        """Return a failed or cancelled payment to pending on *intent_id*.

        *intent_id* is the payment's own intent when that can still be paid,
        otherwise the fresh intent that replaces it.
        """
        self.stripe_payment_intent_id = intent_id
        self.status = PaymentStatus.PENDING
        self.failure_reason = ""
        self.failure_code = ""
        self.failed_at = None

    def apply_gateway_status(self, gateway_status: Optional[str]) -> bool:
        """Apply a raw gateway intent status.

        Returns ``True`` when the status was applied.  Unknown statuses and
        regressions (for example succeeded -> processing) are ignored.
        """
        target = GATEWAY_STATUS_MAP.get(str(gateway_status or ""))
        if target is None:
            return False
        if not self.accepts(target):
            logger.info(
                "payment.transition_ignored",
                intent_id=self.stripe_payment_intent_id,
                current_status=self.status,
                gateway_status=gateway_status,
            )
            return False
        if target == PaymentStatus.SUCCEEDED:
            self.mark_as_succeeded(self.stripe_payment_method_id or None)
        else:
            self.set_status(target)
        return True

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def add_refund(self, refund: Money) -> Money:
        """Accumulate *refund* and re-derive the refund status.

        Raises:
            InvalidMoney: *refund* is zero.
            CurrencyMismatch: *refund* is in another currency.
            RefundExceedsPaymentAmount: the running total would pass the
                paid amount; nothing is changed.
        """
        if refund.is_zero():
            raise InvalidMoney("Refund amount must be greater than zero.")
        if refund.currency != self.currency:
            raise CurrencyMismatch(
                "Cannot perform operation on different currencies: "
                f"{self.currency} and {refund.currency}"
            )
        new_total = self.refunded_amount.add(refund)
        if new_total.is_greater_than(self.amount):
            raise RefundExceedsPaymentAmount()

        self.refunded_value = new_total.amount
        if new_total.is_less_than(self.amount):
            self.set_status(PaymentStatus.PARTIALLY_REFUNDED)
        else:
            self.set_status(PaymentStatus.REFUNDED)
        return new_total

    def __str__(self) -> str:
        return f"Payment {self.stripe_payment_intent_id} - {self.amount.format()}"
