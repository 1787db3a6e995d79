"""
Unit of work - Request-scoped transaction boundary with deferred dispatch.

One unit of work is created per request (or CLI invocation). It owns the
touched-aggregate set, so concurrent requests never share one.

Lifecycle:
    store()/register()  aggregate added to the touched set (pre-persist/update)
    commit()            re-scan every tracked aggregate (pre-flush),
                        make the transaction durable, then publish events
    rollback()          discard the transaction and every pending event
    end()               request finished: publish anything still collected;
                        uncommitted work is rolled back instead
"""

import abc
import logging
from types import TracebackType
from uuid import UUID

from src.application.dispatch import DomainEventCollector, DomainEventDispatcher
from src.domain.aggregate import AggregateRoot
from src.domain.ports import EventBus, SecurityRepository, UserRepository

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(abc.ABC):
    users: UserRepository
    challenges: SecurityRepository

    def __init__(self, event_bus: EventBus) -> None:
        self.collector = DomainEventCollector()
        self.dispatcher = DomainEventDispatcher(self.collector, event_bus)
        self._identity_map: dict[int, AggregateRoot] = {}
        self._uncommitted = False

    def __enter__(self) -> "AbstractUnitOfWork":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None or self._uncommitted:
            self.rollback()

    def track(self, aggregate: AggregateRoot) -> None:
        """Remember an aggregate loaded or stored in this unit of work."""
        self._identity_map.setdefault(id(aggregate), aggregate)

    def register(self, aggregate: AggregateRoot) -> None:
        """Mark an aggregate as about to be created, updated or removed."""
        self.track(aggregate)
        self.collector.collect(aggregate)
        self._uncommitted = True

    def commit(self) -> None:
        """
        Commit the transaction, then publish collected events.

        Raises:
            EventDispatchError: If publishing failed; the commit itself stands
        """
        self.collector.collect_all(self._identity_map.values())
        self._commit()
        self._uncommitted = False
        self.dispatcher.dispatch()

    def rollback(self) -> None:
        self._rollback()
        for aggregate in self._identity_map.values():
            aggregate.pull_events()
        self._identity_map.clear()
        self.collector.clear()
        self._uncommitted = False

    def end(self) -> None:
        """Request/command invocation finished."""
        if self._uncommitted:
            logger.warning("Unit of work ended with uncommitted changes, rolling back")
            self.rollback()
            return
        self.dispatcher.dispatch()

    def lock_user(self, user_id: UUID) -> None:
        """
        Serialize check-then-act operations for one user.

        The default is a no-op; stores shared between processes override it.
        """

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _rollback(self) -> None:
        raise NotImplementedError
