"""Stripe webhook verification.

``WebhookVerifier.parse`` checks the ``Stripe-Signature`` header against
the raw request body before anything in it is trusted, then validates
the JSON into a ``WebhookEventDTO``.
"""

from __future__ import annotations

import json
from typing import Optional, Union

import stripe
import structlog
from pydantic import ValidationError

from modules.payments.dtos import WebhookEventDTO
from modules.payments.exceptions import InvalidWebhookPayload, WebhookSignatureInvalid

logger = structlog.get_logger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


class WebhookVerifier:
    def __init__(self, secret: str, tolerance: int = DEFAULT_TOLERANCE_SECONDS) -> None:
        self._secret = secret
        self._tolerance = tolerance

    def parse(
        self,
        payload: Union[bytes, str],
        signature: Optional[str],
    ) -> WebhookEventDTO:
        """Verify *signature* and return the parsed event.

        Raises:
            WebhookSignatureInvalid: the header is missing, stale or does
                not match, or no signing secret is configured.
            InvalidWebhookPayload: the body is not a well-formed event.
        """
        if not self._secret:
            logger.error("payment.webhook_secret_missing")
            raise WebhookSignatureInvalid("Webhook signing secret is not configured.")
        if not signature:
            raise WebhookSignatureInvalid("Missing Stripe-Signature header.")

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError:
                raise InvalidWebhookPayload(
                    "Webhook payload is not valid UTF-8."
                ) from None

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature, self._secret, self._tolerance
            )
        except stripe.SignatureVerificationError:
            logger.warning("payment.webhook_signature_invalid")
            raise WebhookSignatureInvalid("Invalid webhook signature.") from None

        try:
            body = json.loads(payload)
        except json.JSONDecodeError:
            raise InvalidWebhookPayload("Webhook payload is not valid JSON.") from None
        if not isinstance(body, dict):
            raise InvalidWebhookPayload("Webhook payload must be a JSON object.")

        try:
            return WebhookEventDTO.model_validate(body)
        except ValidationError as exc:
            raise InvalidWebhookPayload(
                f"Malformed webhook event: {exc.error_count()} error(s)."
            ) from None


def build_webhook_verifier() -> WebhookVerifier:
    from django.conf import settings

    return WebhookVerifier(
        secret=settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE,
    )
