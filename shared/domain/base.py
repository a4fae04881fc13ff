"""
Base Domain Classes

Building blocks shared by the booking domain:
- Entity: objects with identity (bookings)
- ValueObject: immutable values compared by content (money, date ranges)
- Aggregate: consistency boundary that records domain events
- DomainEvent: something that happened and is published after commit
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import List
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Entity(ABC):
    """
    Base class for all entities

    Identity fields are keyword-only so subclasses can declare required
    attributes without defaults.
    """
    id: UUID = field(default_factory=uuid4, kw_only=True)
    created_at: datetime = field(default_factory=utcnow, kw_only=True)
    updated_at: datetime = field(default_factory=utcnow, kw_only=True)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def touch(self):
        self.updated_at = utcnow()


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable object without identity, equal when all attributes are equal."""
    pass


@dataclass(eq=False)
class Aggregate(Entity):
    """
    Base class for aggregate roots

    Events recorded here are collected by the unit of work and published
    only once the surrounding transaction has committed.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Copy of the recorded events"""
        return self._events.copy()


_EVENT_BASE_FIELDS = ('event_id', 'occurred_at', 'aggregate_id')


@dataclass
class DomainEvent:
    """Base class for domain events"""
    event_id: UUID = field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=utcnow, kw_only=True)
    aggregate_id: UUID | None = field(default=None, kw_only=True)

    def to_dict(self) -> dict:
        """Flat, JSON-friendly representation used for logging and transport"""
        payload = {
            f.name: _plain(getattr(self, f.name))
            for f in fields(self)
            if f.name not in _EVENT_BASE_FIELDS
        }
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
            'payload': payload,
        }


def _plain(value):
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    return str(value)
