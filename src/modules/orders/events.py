"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    order_number: str = ""
    customer_type: str = ""
    total: str = ""
    currency: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    order_number: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    order_number: str = ""
    old_status: str = ""
    new_status: str = ""
    forced: bool = False


@dataclass(frozen=True)
class GuestOrderConverted(DomainEvent):
    order_number: str = ""
    customer_id: str = ""
