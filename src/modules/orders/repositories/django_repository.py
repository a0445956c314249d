"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
Write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems + outbox rows) is persisted atomically.

Concurrency control on status updates uses ``select_for_update()``
keyed by order number; there is no ``version`` column on the model.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import OutboxEvent
from modules.orders.constants import OPEN_STATES
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


def _normalize_number(order_number: str) -> str:
    return str(order_number or "").strip().upper()


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, order: Order, items: Sequence[OrderItem]) -> Order:
        """Create an order with its items atomically.

        The order's pending domain events go to the outbox last.
        """
        order.save()
        for item in items:
            item.order = order
            item.save()
        self._flush_events(order)

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order and its pending events."""
        entity.save()
        event_count = self._flush_events(entity)
        logger.info(
            "order.saved",
            order_id=str(entity.id),
            order_number=entity.order_number,
            event_count=event_count,
        )
        return entity

    def _flush_events(self, order: Order) -> int:
        """Write pending events to the outbox and publish them after commit."""
        events = order.pull_domain_events()
        for event in events:
            OutboxEvent.record(event, topic=OUTBOX_TOPIC)
        if events:
            transaction.on_commit(lambda: event_bus.publish_all(events))
        return len(events)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self):
        return (
            Order.objects.alive()
            .select_related("customer")
            .prefetch_related("items", "status_history")
        )

    def get_by_id(self, id: str) -> Optional[Order]:
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the customer FK (single JOIN) and
        ``prefetch_related`` for items and status history (separate
        batched queries).  Prevents N+1.
        """
        return self._base_queryset().filter(
            order_number=_normalize_number(order_number)
        ).first()

    def get_for_update(self, order_number: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Only the order row is locked (``of=("self",)``); the nullable
        customer join would otherwise be rejected by PostgreSQL.
        """
        return (
            Order.objects.alive()
            .select_for_update(of=("self",))
            .select_related("customer")
            .prefetch_related("items", "status_history")
            .filter(order_number=_normalize_number(order_number))
            .first()
        )

    def list_recent_for_customer(self, customer: Any, limit: int) -> List[Order]:
        return list(
            self._base_queryset()
            .filter(customer=customer)
            .order_by("-created_at")[:limit]
        )

    def list_for_guest_email(self, email: str, limit: int) -> List[Order]:
        return list(
            self._base_queryset()
            .filter(customer__isnull=True, guest_email__iexact=str(email).strip())
            .order_by("-created_at")[:limit]
        )

    def list_open_orders(self) -> List[Order]:
        return list(
            self._base_queryset()
            .filter(status__in=OPEN_STATES)
            .order_by("created_at")
        )

    # ------------------------------------------------------------------
    # Status history
    # ------------------------------------------------------------------

    def add_history(
        self,
        order: Order,
        old_status: Optional[str],
        new_status: str,
        notes: str = "",
        user: Any = None,
        forced: bool = False,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order=order,
            old_status=old_status,
            new_status=new_status,
            notes=notes,
            user=user if getattr(user, "is_authenticated", False) else None,
            forced=forced,
        )
        logger.info(
            "order.history_added",
            order_number=order.order_number,
            old_status=old_status,
            new_status=new_status,
            forced=forced,
        )
        return history
