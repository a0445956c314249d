"""Django ORM implementation of the Payment repository.

Payments are always locked *after* their order: services lock the order
row first, then call ``get_by_order_for_update`` / ``get_for_update``.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import OutboxEvent
from modules.payments.models import Payment
from modules.payments.repositories.interfaces import IPaymentRepository
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "payments"


class PaymentDjangoRepository(IPaymentRepository):
    """Concrete Payment repository backed by Django ORM."""

    @transaction.atomic
    def save(self, entity: Payment) -> Payment:
        """Persist the payment and hand its pending events to the outbox."""
        entity.save()
        events = entity.pull_domain_events()
        for event in events:
            OutboxEvent.record(event, topic=OUTBOX_TOPIC)
        if events:
            transaction.on_commit(lambda: event_bus.publish_all(events))
        logger.info(
            "payment.saved",
            payment_id=str(entity.id),
            intent_id=entity.stripe_payment_intent_id,
            status=entity.status,
            event_count=len(events),
        )
        return entity

    def get_by_id(self, id: str) -> Optional[Payment]:
        try:
            return Payment.objects.select_related("order").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_intent_id(self, intent_id: str) -> Optional[Payment]:
        return (
            Payment.objects.select_related("order")
            .filter(stripe_payment_intent_id=intent_id)
            .first()
        )

    def get_by_order(self, order: Any) -> Optional[Payment]:
        return Payment.objects.filter(order=order).first()

    def get_for_update(self, intent_id: str) -> Optional[Payment]:
        return (
            Payment.objects.select_for_update()
            .filter(stripe_payment_intent_id=intent_id)
            .first()
        )

    def get_by_order_for_update(self, order: Any) -> Optional[Payment]:
        return Payment.objects.select_for_update().filter(order=order).first()
