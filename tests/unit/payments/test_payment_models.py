"""Unit tests for the Payment record."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from freezegun import freeze_time

from modules.payments.constants import PaymentMethod, PaymentStatus
from modules.payments.exceptions import InvalidPaymentStatus, RefundExceedsPaymentAmount
from modules.payments.models import Payment
from shared.domain.money import CurrencyMismatch, InvalidMoney, Money

pytestmark = pytest.mark.unit


def _make_payment(
    status: str = PaymentStatus.SUCCEEDED, amount: str = "100.00"
) -> Payment:
    payment = Payment(stripe_payment_intent_id="pi_unit_1", status=status)
    payment.amount = Money(amount, "USD")
    return payment


class TestRefunds:
    def test_partial_refund(self):
        payment = _make_payment()

        total = payment.add_refund(Money("30.00"))

        assert total == Money("30.00")
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED
        assert payment.remaining_amount == Money("70.00")
        assert payment.is_partially_refunded()
        assert not payment.is_fully_refunded()

    def test_refunds_accumulate_to_full(self):
        payment = _make_payment()
        payment.add_refund(Money("30.00"))
        payment.add_refund(Money("70.00"))

        assert payment.status == PaymentStatus.REFUNDED
        assert payment.is_fully_refunded()
        assert payment.remaining_amount.is_zero()

    def test_over_refund_leaves_state_unchanged(self):
        payment = _make_payment()
        payment.add_refund(Money("60.00"))

        with pytest.raises(RefundExceedsPaymentAmount):
            payment.add_refund(Money("40.01"))

        assert payment.refunded_amount == Money("60.00")
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED

    def test_zero_refund_rejected(self):
        with pytest.raises(InvalidMoney):
            _make_payment().add_refund(Money("0"))

    def test_other_currency_rejected(self):
        with pytest.raises(CurrencyMismatch):
            _make_payment().add_refund(Money("1.00", "EUR"))

    def test_refundable_predicates(self):
        payment = _make_payment()
        assert payment.can_be_refunded()
        assert payment.has_refundable_balance()

        payment.add_refund(Money("10.00"))
        assert not payment.can_be_refunded()
        assert payment.has_refundable_balance()

        assert not _make_payment(PaymentStatus.PENDING).has_refundable_balance()


class TestStatus:
    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidPaymentStatus):
            _make_payment().set_status("chargeback")

    def test_paid_at_is_set_once(self):
        payment = _make_payment(PaymentStatus.PENDING)
        with freeze_time("2026-03-01 12:00:00"):
            payment.mark_as_succeeded("pm_1")
        with freeze_time("2026-03-02 12:00:00"):
            payment.set_status(PaymentStatus.SUCCEEDED)

        assert payment.paid_at == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_refunded_at_stamped_on_first_refund(self):
        payment = _make_payment()
        with freeze_time("2026-03-05 09:00:00"):
            payment.add_refund(Money("10.00"))
        with freeze_time("2026-03-06 09:00:00"):
            payment.add_refund(Money("90.00"))

        assert payment.refunded_at == datetime(2026, 3, 5, 9, 0, tzinfo=timezone.utc)

    def test_mark_as_succeeded_infers_method(self):
        payment = _make_payment(PaymentStatus.PENDING)
        payment.mark_as_succeeded("pm_1", {"type": "us_bank_account"})

        assert payment.stripe_payment_method_id == "pm_1"
        assert payment.payment_method == PaymentMethod.BANK_TRANSFER

    def test_mark_as_failed(self):
        payment = _make_payment(PaymentStatus.PENDING)
        payment.mark_as_failed("Your card was declined.", "card_declined")

        assert payment.status == PaymentStatus.FAILED
        assert payment.failed_at is not None
        assert payment.failure_code == "card_declined"

    def test_reopen_clears_failure(self):
        payment = _make_payment(PaymentStatus.PENDING)
        payment.mark_as_failed("declined", "card_declined")

        payment.reopen("pi_unit_2")

        assert payment.stripe_payment_intent_id == "pi_unit_2"
        assert payment.status == PaymentStatus.PENDING
        assert payment.failure_reason == ""
        assert payment.failed_at is None


class TestApplyGatewayStatus:
    @pytest.mark.parametrize(
        "gateway_status, expected",
        [
            ("processing", PaymentStatus.PROCESSING),
            ("requires_capture", PaymentStatus.PROCESSING),
            ("requires_action", PaymentStatus.PENDING),
            ("canceled", PaymentStatus.CANCELLED),
            ("succeeded", PaymentStatus.SUCCEEDED),
        ],
    )
    def test_forward_statuses_applied(self, gateway_status, expected):
        payment = _make_payment(PaymentStatus.PENDING)
        assert payment.apply_gateway_status(gateway_status)
        assert payment.status == expected

    def test_regression_ignored(self):
        payment = _make_payment(PaymentStatus.SUCCEEDED)
        assert not payment.apply_gateway_status("processing")
        assert payment.status == PaymentStatus.SUCCEEDED

    def test_cancelled_is_terminal(self):
        payment = _make_payment(PaymentStatus.CANCELLED)
        assert not payment.apply_gateway_status("succeeded")
        assert payment.status == PaymentStatus.CANCELLED

    def test_requires_refund_does_not_mark_refunded(self):
        payment = _make_payment(PaymentStatus.SUCCEEDED, amount="25.00")

        assert not payment.apply_gateway_status("requires_refund")
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.refunded_amount == Money("0.00")
        assert payment.refunded_at is None

    def test_unknown_gateway_status_ignored(self):
        payment = _make_payment(PaymentStatus.PENDING)
        assert not payment.apply_gateway_status("mystery")
        assert payment.status == PaymentStatus.PENDING

    def test_reapplying_succeeded_keeps_paid_at(self):
        payment = _make_payment(PaymentStatus.PENDING)
        with freeze_time("2026-04-01 00:00:00"):
            payment.apply_gateway_status("succeeded")
        first_paid_at = payment.paid_at
        with freeze_time("2026-04-02 00:00:00"):
            payment.apply_gateway_status("succeeded")

        assert payment.paid_at == first_paid_at
        assert payment.amount == Money(Decimal("100.00"))
