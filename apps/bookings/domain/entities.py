"""
Booking Domain Entities

- BookingStatus: lifecycle states
- PropertyBookingRequest / ActivityBookingRequest: the tagged request variant
- Booking: aggregate root for a committed reservation
"""

import secrets
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Tuple, Union
from uuid import UUID

from apps.bookings.domain.errors import InvalidStateTransition
from apps.bookings.domain.pricing import ActivitySelection, AddOnSelection, PriceBreakdown
from apps.catalog.domain import ResourceKind
from shared.domain.base import Aggregate, utcnow
from shared.domain.value_objects import DateRange


class BookingStatus(Enum):
    """
    Booking status

    State transitions (driven by external payment/admin actions):
    - PENDING -> CONFIRMED (payment confirmed)
    - PENDING -> CANCELLED
    - CONFIRMED -> CANCELLED
    - CONFIRMED -> COMPLETED (stay or activity finished)

    Only PENDING and CONFIRMED bookings occupy their dates.
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class AttemptState(Enum):
    """Progress of a single create-booking attempt"""
    REQUESTED = 'requested'
    VALIDATED = 'validated'
    AVAILABILITY_CHECKED = 'availability_checked'
    COMMITTED = 'committed'
    REJECTED_INVALID = 'rejected_invalid'
    REJECTED_CONFLICT = 'rejected_conflict'
    REJECTED_CAPACITY = 'rejected_capacity'


@dataclass(frozen=True)
class ContactDetails:
    """Requester contact info; opaque to the engine"""
    name: str = ''
    email: str = ''
    phone: str = ''
    notes: str = ''


@dataclass(frozen=True)
class SelectionRequest:
    """An add-on (quantity) or activity (participants) chosen by the client"""
    item_id: UUID
    quantity: int


@dataclass(frozen=True)
class PropertyBookingRequest:
    resource_id: UUID
    check_in: date
    check_out: date
    guests: int
    add_ons: Tuple[SelectionRequest, ...] = ()
    activities: Tuple[SelectionRequest, ...] = ()
    contact: ContactDetails = field(default_factory=ContactDetails)
    kind: ResourceKind = field(default=ResourceKind.PROPERTY, init=False)


@dataclass(frozen=True)
class ActivityBookingRequest:
    resource_id: UUID
    date: date
    participants: int
    add_ons: Tuple[SelectionRequest, ...] = ()
    contact: ContactDetails = field(default_factory=ContactDetails)
    kind: ResourceKind = field(default=ResourceKind.ACTIVITY, init=False)


BookingRequest = Union[PropertyBookingRequest, ActivityBookingRequest]


def generate_booking_code() -> str:
    """Human-readable booking reference, e.g. BK3F9A0C21"""
    return f"BK{secrets.token_hex(4).upper()}"


@dataclass(eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Invariants:
    - dates is a valid half-open range
    - guest_count >= 1
    - the price breakdown and selection prices are frozen at creation
    """

    booking_code: str
    resource_id: UUID
    kind: ResourceKind
    dates: DateRange
    guest_count: int
    price: PriceBreakdown

    add_ons: Tuple[AddOnSelection, ...] = ()
    activities: Tuple[ActivitySelection, ...] = ()
    contact: ContactDetails = field(default_factory=ContactDetails)

    status: BookingStatus = BookingStatus.PENDING
    payment_reference: str = ''
    cancellation_reason: str = ''

    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self):
        if self.guest_count < 1:
            raise ValueError("Guest count must be at least 1")

    def confirm(self, payment_reference: str = ''):
        """PENDING -> CONFIRMED; the dates stay occupied"""
        self._require(BookingStatus.PENDING, action='confirm')

        from apps.bookings.domain.events import BookingConfirmed

        self.status = BookingStatus.CONFIRMED
        self.payment_reference = payment_reference
        self.confirmed_at = utcnow()
        self.touch()
        self.add_event(BookingConfirmed(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            payment_reference=payment_reference,
        ))

    def cancel(self, reason: str = ''):
        """PENDING|CONFIRMED -> CANCELLED; the caller must release the dates"""
        self._require(BookingStatus.PENDING, BookingStatus.CONFIRMED, action='cancel')

        from apps.bookings.domain.events import BookingCancelled

        old_status = self.status
        self.status = BookingStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = utcnow()
        self.touch()
        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            dates=self.dates,
            reason=reason,
            old_status=old_status.value,
        ))

    def complete(self):
        """CONFIRMED -> COMPLETED; the caller must release the dates"""
        self._require(BookingStatus.CONFIRMED, action='complete')

        from apps.bookings.domain.events import BookingCompleted

        self.status = BookingStatus.COMPLETED
        self.completed_at = utcnow()
        self.touch()
        self.add_event(BookingCompleted(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
        ))

    def _require(self, *allowed: BookingStatus, action: str):
        if self.status not in allowed:
            raise InvalidStateTransition(
                f"Cannot {action} booking {self.booking_code} in status {self.status.value}",
                status=self.status.value,
            )

    def blocks_dates(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def nights(self) -> int:
        return len(self.dates)

    def __str__(self):
        return f"Booking {self.booking_code} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, booking_code={self.booking_code}, "
            f"status={self.status.value}, dates={self.dates!r})"
        )
