"""
Deferred domain event dispatch - Post-commit publication.

DomainEventCollector is the touched-aggregate set of one unit of work.
DomainEventDispatcher drains it after the unit of work commits and
publishes every recorded event, in recording order, to the event bus.

Failure policy: a failing publish does not stop the loop. Every event is
attempted, each failure is logged, and a single EventDispatchError listing
all failures is raised at the end. The touched set is cleared either way,
so nothing is redelivered on the next cycle.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable

from src.domain.aggregate import AggregateRoot
from src.domain.events import DomainEvent
from src.domain.ports import EventBus

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatchError(Exception):
    """One or more subscribers failed while events were published."""

    def __init__(self, failures: list[tuple[DomainEvent, Exception]]) -> None:
        names = ", ".join(type(event).__name__ for event, _ in failures)
        super().__init__(f"{len(failures)} domain event(s) failed to publish: {names}")
        self.failures = failures


class DomainEventCollector:
    """
    Identity-based set of aggregates touched during one unit of work.

    Must never be shared between concurrent requests.
    """

    def __init__(self) -> None:
        self._aggregates: dict[int, AggregateRoot] = {}

    def collect(self, aggregate: object) -> None:
        """Register an aggregate once (idempotent, keyed by identity)."""
        if isinstance(aggregate, AggregateRoot):
            self._aggregates.setdefault(id(aggregate), aggregate)

    def collect_all(self, aggregates: Iterable[object]) -> None:
        for aggregate in aggregates:
            self.collect(aggregate)

    @property
    def aggregates(self) -> list[AggregateRoot]:
        return list(self._aggregates.values())

    def clear(self) -> None:
        self._aggregates.clear()

    def __len__(self) -> int:
        return len(self._aggregates)


class DomainEventDispatcher:
    """Publishes the events of every collected aggregate to the bus."""

    def __init__(self, collector: DomainEventCollector, event_bus: EventBus) -> None:
        self._collector = collector
        self._event_bus = event_bus

    def dispatch(self) -> int:
        """
        Drain the touched set and publish its events.

        Returns:
            Number of events successfully published

        Raises:
            EventDispatchError: If any publish failed (after all were attempted)
        """
        aggregates = self._collector.aggregates
        if not aggregates:
            return 0

        published = 0
        failures: list[tuple[DomainEvent, Exception]] = []
        try:
            for aggregate in aggregates:
                for event in aggregate.pull_events():
                    try:
                        self._event_bus.publish(event)
                        published += 1
                    except Exception as exc:
                        logger.exception("Failed to publish %s", type(event).__name__)
                        failures.append((event, exc))
        finally:
            self._collector.clear()

        logger.debug("Dispatched %d domain event(s) from %d aggregate(s)", published, len(aggregates))
        if failures:
            raise EventDispatchError(failures)
        return published


class InMemoryEventBus:
    """
    Implements EventBus protocol with synchronous in-process subscribers.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Subscribers registered for a base class also receive its subclasses.
    Subscriber exceptions propagate to the caller.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: DomainEvent) -> None:
        for event_type, handlers in list(self._handlers.items()):
            if isinstance(event, event_type):
                for handler in handlers:
                    handler(event)
