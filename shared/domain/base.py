"""
Base Domain Classes

Building blocks shared by the bounded contexts:
- Entity: object with identity
- ValueObject: immutable object compared by value
- Aggregate: consistency boundary that records domain events
- DomainEvent: something that happened, published after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID, uuid4


@dataclass
class Entity(ABC):
    """
    Base class for entities

    Two entities are equal when their ids are equal.
    """
    id: UUID = field(default_factory=uuid4)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable object without identity, equal when all fields are equal."""
    pass


@dataclass(eq=False)
class Aggregate(Entity):
    """
    Base class for aggregate roots

    Collects domain events which the unit of work hands to the
    message bus once the surrounding transaction has committed.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Copy of the collected events"""
        return self._events.copy()


@dataclass
class DomainEvent:
    """Base class for domain events"""
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: UUID = None

    def to_dict(self) -> dict:
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
