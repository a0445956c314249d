"""Unit tests for webhook signature verification and parsing."""

import time

import pytest

from modules.payments.exceptions import InvalidWebhookPayload, WebhookSignatureInvalid
from modules.payments.webhooks import WebhookVerifier, build_webhook_verifier

pytestmark = pytest.mark.unit

SECRET = "whsec_unit_secret"


@pytest.fixture()
def verifier():
    return WebhookVerifier(SECRET)


@pytest.fixture()
def intent_event(webhook_event):
    return webhook_event(
        "payment_intent.succeeded",
        {
            "id": "pi_123",
            "object": "payment_intent",
            "status": "succeeded",
            "amount": 2500,
            "currency": "usd",
            "payment_method": "pm_1",
        },
    )


class TestWebhookVerifier:
    def test_valid_signature_parses_event(self, verifier, intent_event, sign_webhook):
        event = verifier.parse(intent_event, sign_webhook(intent_event, SECRET))

        assert event.type == "payment_intent.succeeded"
        assert event.is_payment_intent_event()
        assert event.object.intent_id == "pi_123"
        assert event.object.payment_method_id == "pm_1"

    def test_accepts_bytes(self, verifier, intent_event, sign_webhook):
        signature = sign_webhook(intent_event, SECRET)
        event = verifier.parse(intent_event.encode("utf-8"), signature)
        assert event.id == "evt_test_1"

    def test_missing_signature(self, verifier, intent_event):
        with pytest.raises(WebhookSignatureInvalid):
            verifier.parse(intent_event, None)

    def test_wrong_secret(self, verifier, intent_event, sign_webhook):
        with pytest.raises(WebhookSignatureInvalid):
            verifier.parse(intent_event, sign_webhook(intent_event, "whsec_other"))

    def test_tampered_payload(self, verifier, intent_event, sign_webhook):
        signature = sign_webhook(intent_event, SECRET)
        tampered = intent_event.replace("2500", "1")

        with pytest.raises(WebhookSignatureInvalid):
            verifier.parse(tampered, signature)

    def test_stale_timestamp(self, verifier, intent_event, sign_webhook):
        stale = int(time.time()) - 3600
        with pytest.raises(WebhookSignatureInvalid):
            verifier.parse(intent_event, sign_webhook(intent_event, SECRET, stale))

    def test_unconfigured_secret_rejects_everything(self, intent_event, sign_webhook):
        with pytest.raises(WebhookSignatureInvalid):
            WebhookVerifier("").parse(intent_event, sign_webhook(intent_event))

    def test_signed_non_json(self, verifier, sign_webhook):
        payload = "not json"
        with pytest.raises(InvalidWebhookPayload):
            verifier.parse(payload, sign_webhook(payload, SECRET))

    def test_signed_event_without_data(self, verifier, sign_webhook):
        payload = '{"id": "evt_1", "type": "payment_intent.succeeded"}'
        with pytest.raises(InvalidWebhookPayload):
            verifier.parse(payload, sign_webhook(payload, SECRET))

    def test_charge_object_resolves_intent_id(
        self, verifier, webhook_event, sign_webhook
    ):
        payload = webhook_event(
            "charge.refunded",
            {
                "id": "ch_1",
                "object": "charge",
                "payment_intent": "pi_123",
                "amount_refunded": 500,
                "currency": "usd",
            },
        )
        event = verifier.parse(payload, sign_webhook(payload, SECRET))

        assert event.is_charge_refunded()
        assert event.object.intent_id == "pi_123"
        assert event.object.amount_refunded == 500

    @pytest.mark.parametrize("metadata", ["oops", ["order_id"], 7])
    def test_non_object_metadata_rejected(
        self, verifier, webhook_event, sign_webhook, metadata
    ):
        payload = webhook_event(
            "payment_intent.succeeded",
            {"id": "pi_123", "object": "payment_intent", "metadata": metadata},
        )
        with pytest.raises(InvalidWebhookPayload):
            verifier.parse(payload, sign_webhook(payload, SECRET))

    def test_null_metadata_is_empty(self, verifier, webhook_event, sign_webhook):
        payload = webhook_event(
            "payment_intent.succeeded",
            {"id": "pi_123", "object": "payment_intent", "metadata": None},
        )
        event = verifier.parse(payload, sign_webhook(payload, SECRET))

        assert event.object.metadata == {}

    def test_built_from_settings(self, intent_event, sign_webhook):
        event = build_webhook_verifier().parse(intent_event, sign_webhook(intent_event))
        assert event.object.id == "pi_123"
