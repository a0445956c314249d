"""Integration tests for webhook reconciliation."""

import pytest
from freezegun import freeze_time

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStatusHistory
from modules.payments.constants import PaymentStatus
from modules.payments.exceptions import InvalidWebhookPayload, WebhookSignatureInvalid
from modules.payments.models import Payment
from modules.payments.services import build_payment_service
from shared.domain.money import Money

pytestmark = pytest.mark.integration

WEBHOOK_URL = "/api/v1/payments/webhook/"


@pytest.fixture()
def service():
    return build_payment_service()


@pytest.fixture()
def payment(service, guest_order):
    return service.create_payment_intent(guest_order.order_number).payment


@pytest.fixture()
def deliver(service, sign_webhook, webhook_event):
    """Sign and apply one event through the service."""

    def _deliver(event_type, obj, event_id="evt_test_1"):
        payload = webhook_event(event_type, obj, event_id)
        return service.handle_webhook(payload, sign_webhook(payload))

    return _deliver


def _intent_object(payment, status="succeeded", **extra):
    obj = {
        "id": payment.stripe_payment_intent_id,
        "object": "payment_intent",
        "status": status,
        "amount": 2500,
        "currency": "usd",
        "payment_method": "pm_webhook",
    }
    obj.update(extra)
    return obj


def _charge_object(payment, amount_refunded, currency="usd"):
    return {
        "id": "ch_1",
        "object": "charge",
        "payment_intent": payment.stripe_payment_intent_id,
        "amount": 2500,
        "amount_refunded": amount_refunded,
        "currency": currency,
    }


class TestPaymentIntentEvents:
    def test_succeeded_confirms_order(self, deliver, payment, guest_order):
        result = deliver(
            "payment_intent.succeeded",
            _intent_object(
                payment,
                charges={
                    "data": [{"payment_method_details": {"type": "us_bank_account"}}]
                },
            ),
        )

        assert result.status == PaymentStatus.SUCCEEDED
        assert result.stripe_payment_method_id == "pm_webhook"
        assert result.payment_method == "bank_transfer"
        assert Order.objects.get(id=guest_order.id).status == OrderStatus.CONFIRMED

    def test_duplicate_delivery_changes_nothing(self, deliver, payment, guest_order):
        with freeze_time("2026-05-01 10:00:00"):
            deliver("payment_intent.succeeded", _intent_object(payment))
        with freeze_time("2026-05-01 11:00:00"):
            deliver("payment_intent.succeeded", _intent_object(payment))

        stored = Payment.objects.get(id=payment.id)
        assert stored.paid_at.hour == 10
        assert OutboxEvent.objects.filter(event_type="PaymentSucceeded").count() == 1
        confirmations = OrderStatusHistory.objects.filter(
            order_id=guest_order.id, new_status=OrderStatus.CONFIRMED
        )
        assert confirmations.count() == 1

    def test_late_processing_event_is_ignored(self, deliver, payment):
        deliver("payment_intent.succeeded", _intent_object(payment))
        result = deliver(
            "payment_intent.processing", _intent_object(payment, status="processing")
        )

        assert result.status == PaymentStatus.SUCCEEDED

    def test_failure_after_success_is_ignored(self, deliver, payment):
        deliver("payment_intent.succeeded", _intent_object(payment))
        result = deliver(
            "payment_intent.payment_failed",
            _intent_object(
                payment,
                status="requires_payment_method",
                last_payment_error={"message": "Declined", "code": "card_declined"},
            ),
        )

        assert result.status == PaymentStatus.SUCCEEDED
        assert result.failure_reason == ""

    def test_payment_failed_records_reason(self, deliver, payment, guest_order):
        result = deliver(
            "payment_intent.payment_failed",
            _intent_object(
                payment,
                status="requires_payment_method",
                last_payment_error={
                    "message": "Insufficient funds",
                    "code": "insufficient_funds",
                },
            ),
        )

        assert result.status == PaymentStatus.FAILED
        assert result.failure_reason == "Insufficient funds"
        assert result.failure_code == "insufficient_funds"
        assert Order.objects.get(id=guest_order.id).status == OrderStatus.PENDING

    def test_processing_then_canceled(self, deliver, payment):
        processing = deliver(
            "payment_intent.processing", _intent_object(payment, status="processing")
        )
        assert processing.status == PaymentStatus.PROCESSING

        canceled = deliver(
            "payment_intent.canceled", _intent_object(payment, status="canceled")
        )
        assert canceled.status == PaymentStatus.CANCELLED

    def test_metadata_is_merged(self, deliver, payment):
        result = deliver(
            "payment_intent.succeeded",
            _intent_object(payment, metadata={"source": "webhook"}),
        )

        assert result.stripe_metadata["source"] == "webhook"
        assert result.stripe_metadata["attempt"] == "1"


class TestIgnoredEvents:
    def test_unknown_intent(self, deliver):
        result = deliver(
            "payment_intent.succeeded",
            {"id": "pi_unknown", "object": "payment_intent", "status": "succeeded"},
        )
        assert result is None

    def test_unhandled_event_type(self, deliver, payment):
        result = deliver("customer.created", {"id": "cus_1", "object": "customer"})

        assert result is None
        assert Payment.objects.get(id=payment.id).status == PaymentStatus.PENDING

    def test_event_without_intent(self, deliver):
        assert deliver("charge.refunded", {"id": "ch_1", "object": "charge"}) is None


class TestChargeRefunded:
    def test_refunds_are_reconciled_by_delta(self, deliver, payment, guest_order):
        deliver("payment_intent.succeeded", _intent_object(payment))

        partial = deliver("charge.refunded", _charge_object(payment, 1000))
        assert partial.status == PaymentStatus.PARTIALLY_REFUNDED
        assert partial.refunded_amount == Money("10.00")

        replay = deliver("charge.refunded", _charge_object(payment, 1000), "evt_2")
        assert replay.refunded_amount == Money("10.00")

        full = deliver("charge.refunded", _charge_object(payment, 2500), "evt_3")
        assert full.status == PaymentStatus.REFUNDED
        assert full.refunded_amount == Money("25.00")
        assert Order.objects.get(id=guest_order.id).status == OrderStatus.REFUNDED

    def test_currency_mismatch_is_ignored(self, deliver, payment):
        deliver("payment_intent.succeeded", _intent_object(payment))

        result = deliver("charge.refunded", _charge_object(payment, 500, "eur"))

        assert result.refunded_amount.is_zero()
        assert result.status == PaymentStatus.SUCCEEDED

    def test_refund_of_unpaid_payment_is_ignored(self, deliver, payment):
        result = deliver("charge.refunded", _charge_object(payment, 500))

        assert result.status == PaymentStatus.PENDING
        assert result.refunded_amount.is_zero()


class TestVerification:
    def test_bad_signature(self, service, payment, webhook_event, sign_webhook):
        payload = webhook_event("payment_intent.succeeded", _intent_object(payment))

        with pytest.raises(WebhookSignatureInvalid):
            service.handle_webhook(payload, sign_webhook(payload, "whsec_wrong"))

        assert Payment.objects.get(id=payment.id).status == PaymentStatus.PENDING

    def test_malformed_event(self, service, sign_webhook):
        payload = '{"id": "evt_1"}'
        with pytest.raises(InvalidWebhookPayload):
            service.handle_webhook(payload, sign_webhook(payload))


class TestWebhookEndpoint:
    def test_signed_event_is_applied(
        self, api_client, payment, webhook_event, sign_webhook
    ):
        payload = webhook_event("payment_intent.succeeded", _intent_object(payment))

        response = api_client.post(
            WEBHOOK_URL,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=sign_webhook(payload),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["received"] is True
        assert body["data"]["status"] == PaymentStatus.SUCCEEDED

    def test_ignored_event_still_acknowledged(
        self, api_client, webhook_event, sign_webhook
    ):
        payload = webhook_event("invoice.paid", {"id": "in_1", "object": "invoice"})

        response = api_client.post(
            WEBHOOK_URL,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=sign_webhook(payload),
        )

        assert response.status_code == 200
        assert response.json() == {"received": True, "data": None}

    def test_missing_signature_is_400(self, api_client, payment, webhook_event):
        payload = webhook_event("payment_intent.succeeded", _intent_object(payment))

        response = api_client.post(
            WEBHOOK_URL, data=payload, content_type="application/json"
        )

        assert response.status_code == 400
        assert response.json()["error"]["status"] == 400
        assert Payment.objects.get(id=payment.id).status == PaymentStatus.PENDING
