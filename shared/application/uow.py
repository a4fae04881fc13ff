"""
Unit of Work Pattern

Wraps a booking commit in a transaction and publishes the domain events
collected from aggregates only after that transaction has committed.
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._compensations: List[Callable[[], None]] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""

    def rollback(self):
        """Discard collected events and compensations"""
        if self._events:
            logger.warning(f"Rolling back, discarding {len(self._events)} events")
        self._events.clear()
        self._compensations.clear()

    def add_compensation(self, callback: Callable[[], None]):
        """
        Register an undo step for a write made outside the database

        Only units of work without a real transaction run these on rollback.
        """
        self._compensations.append(callback)

    def collect_events(self, aggregate):
        """Move pending events from an aggregate root into this unit of work"""
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def _take_events(self) -> List[DomainEvent]:
        events = self._events.copy()
        self._events.clear()
        return events

    @staticmethod
    def _publish_events(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")
        try:
            message_bus.publish_events(events)
        except Exception as e:
            # The booking is already committed; a failed publish must not undo it.
            logger.error(f"Error publishing events: {e}", exc_info=True)


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            availability.reserve(resource_id, dates, booking.id)
            booking_repo.add(booking)
            uow.collect_events(booking)
        # transaction committed, events published via on_commit
    """

    def __init__(self, using: str | None = None):
        super().__init__()
        self._using = using
        self._transaction = None

    def __enter__(self):
        self._transaction = transaction.atomic(using=self._using)
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing after the outermost commit

        transaction.on_commit() drops the callback if the transaction is
        rolled back later, so events never describe uncommitted state.
        """
        self._compensations.clear()
        events = self._take_events()
        logger.debug(f"Committing transaction with {len(events)} events")
        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """
    Unit of Work without a database

    Used with the in-memory availability index and repository; atomicity of
    the reservation itself is provided by the index.
    """

    def commit(self):
        self._compensations.clear()
        events = self._take_events()
        if events:
            self._publish_events(events)

    def rollback(self):
        for undo in reversed(self._compensations):
            undo()
        super().rollback()
