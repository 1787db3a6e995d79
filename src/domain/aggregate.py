"""Aggregate root base - records domain events until they are dispatched."""

from uuid import UUID

from .events import DomainEvent


class AggregateRoot:
    """
    Base class for objects that record domain events.

    Events are appended by managers after the event has been applied and
    are drained by the dispatcher once the unit of work commits.
    Identity (not equality) is what the unit of work tracks.
    """

    id: UUID

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []

    def record_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    def pull_events(self) -> list[DomainEvent]:
        """Return recorded events in order and clear them."""
        events = list(self._events)
        self._events.clear()
        return events

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)
