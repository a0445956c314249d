"""In-process event bus; services publish to it from ``on_commit`` hooks."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Tuple, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Synchronous bus dispatching each event to handlers of its exact type.

    Subscribing the same handler twice is a no-op, so ``AppConfig.ready``
    may run more than once (as it does under some test runners).
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        registered = self._handlers.setdefault(event_class, [])
        if handler not in registered:
            registered.append(handler)

    def subscribe_many(
        self, subscriptions: Mapping[Type[DomainEvent], IEventHandler]
    ) -> None:
        for event_class, handler in subscriptions.items():
            self.subscribe(event_class, handler)

    def handlers_for(
        self, event_class: Type[DomainEvent]
    ) -> Tuple[IEventHandler, ...]:
        return tuple(self._handlers.get(event_class, ()))

    def publish(self, event: DomainEvent) -> None:
        handlers = self.handlers_for(type(event))
        logger.debug(
            "event_bus.dispatching",
            event_name=event.event_name,
            aggregate_id=str(event.aggregate_id),
            handler_count=len(handlers),
        )
        for handler in handlers:
            handler.handle(event)

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


event_bus = InMemoryEventBus()
