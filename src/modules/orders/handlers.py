"""Post-commit handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    GuestOrderConverted,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            customer_type=event.customer_type,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        log = logger.bind(
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            old_status=event.old_status,
            new_status=event.new_status,
        )
        if event.forced:
            log.warning("order.event.status_forced")
        else:
            log.info("order.event.status_changed")


class GuestOrderConvertedHandler(IEventHandler[GuestOrderConverted]):
    def handle(self, event: GuestOrderConverted) -> None:
        logger.info(
            "order.event.guest_converted",
            order_id=str(event.aggregate_id),
            customer_id=event.customer_id,
        )


order_created_handler = OrderCreatedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()
guest_order_converted_handler = GuestOrderConvertedHandler()
