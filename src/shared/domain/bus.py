"""Contracts between aggregates raising events and the code reacting to them."""

from __future__ import annotations

from typing import Generic, Iterable, Mapping, Protocol, Tuple, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    """Reacts to one event type; runs only after the emitting transaction."""

    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> None: ...

    def publish_all(self, events: Iterable[DomainEvent]) -> None: ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def subscribe_many(
        self, subscriptions: Mapping[Type[DomainEvent], IEventHandler]
    ) -> None: ...

    def handlers_for(
        self, event_class: Type[DomainEvent]
    ) -> Tuple[IEventHandler, ...]: ...
