"""
Unit of Work Pattern

Wraps a database transaction and publishes the domain events collected
during it only after the transaction has committed.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        pass

    @abstractmethod
    def rollback(self):
        pass

    @abstractmethod
    def collect_events(self, aggregate):
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            inventory = reservation_repo.load_inventory(item_id, buffer_days)
            inventory.allocate(dates)
            uow.collect_events(inventory)
            reservation_repo.add(...)
        # transaction committed, events published

    Any exception raised inside the block rolls the transaction back and
    discards the collected events; the exception propagates unchanged.
    """

    def __init__(self, using=None):
        self._using = using
        self._events: List[DomainEvent] = []
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
        Schedule event publishing for after the database commit

        transaction.on_commit() drops the callback if the outer
        transaction ends up rolling back.
        """
        logger.debug("Committing transaction with %d events", len(self._events))

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def rollback(self):
        if self._events:
            logger.warning("Rolling back transaction, discarding %d events", len(self._events))
        self._events.clear()

    def collect_events(self, aggregate):
        """Move pending events from the aggregate into this unit of work"""
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                "Collected %d events from %s (ID: %s)",
                len(new_events), aggregate.__class__.__name__, aggregate.id,
            )

    def add_event(self, event: DomainEvent):
        """Record an event raised by the use case itself rather than an aggregate"""
        self._events.append(event)

    def _publish_events(self, events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info("Publishing %d domain events after commit", len(events))

        try:
            message_bus.publish_events(events)
        except Exception:
            # Rows are already committed; a failed subscriber must not
            # turn a successful booking into an error.
            logger.exception("Error publishing events")
