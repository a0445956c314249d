"""Post-commit handlers for Payments domain events."""

from __future__ import annotations

import structlog

from modules.payments.events import (
    PaymentFailed,
    PaymentIntentCreated,
    PaymentRefunded,
    PaymentSucceeded,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class PaymentIntentCreatedHandler(IEventHandler[PaymentIntentCreated]):
    def handle(self, event: PaymentIntentCreated) -> None:
        logger.info(
            "payment.event.intent_created",
            order_number=event.order_number,
            intent_id=event.intent_id,
        )


class PaymentSucceededHandler(IEventHandler[PaymentSucceeded]):
    def handle(self, event: PaymentSucceeded) -> None:
        logger.info(
            "payment.event.succeeded",
            order_number=event.order_number,
            intent_id=event.intent_id,
            amount=event.amount,
            currency=event.currency,
        )


class PaymentFailedHandler(IEventHandler[PaymentFailed]):
    def handle(self, event: PaymentFailed) -> None:
        logger.warning(
            "payment.event.failed",
            order_number=event.order_number,
            intent_id=event.intent_id,
            code=event.code,
        )


class PaymentRefundedHandler(IEventHandler[PaymentRefunded]):
    def handle(self, event: PaymentRefunded) -> None:
        logger.info(
            "payment.event.refunded",
            order_number=event.order_number,
            intent_id=event.intent_id,
            amount=event.amount,
            refunded_total=event.refunded_total,
            fully_refunded=event.fully_refunded,
        )


payment_intent_created_handler = PaymentIntentCreatedHandler()
payment_succeeded_handler = PaymentSucceededHandler()
payment_failed_handler = PaymentFailedHandler()
payment_refunded_handler = PaymentRefundedHandler()
