"""Domain events for the Payments bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PaymentIntentCreated(DomainEvent):
    order_number: str = ""
    intent_id: str = ""
    amount: str = ""
    currency: str = ""


@dataclass(frozen=True)
class PaymentSucceeded(DomainEvent):
    order_number: str = ""
    intent_id: str = ""
    amount: str = ""
    currency: str = ""


@dataclass(frozen=True)
class PaymentFailed(DomainEvent):
    order_number: str = ""
    intent_id: str = ""
    reason: str = ""
    code: str = ""


@dataclass(frozen=True)
class PaymentRefunded(DomainEvent):
    order_number: str = ""
    intent_id: str = ""
    amount: str = ""
    refunded_total: str = ""
    currency: str = ""
    fully_refunded: bool = False
