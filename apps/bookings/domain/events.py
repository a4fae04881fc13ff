"""
Booking Domain Events

Published on the message bus after the transaction that produced them
has committed.
"""

from dataclasses import dataclass
from uuid import UUID

from apps.bookings.domain.pricing import PriceBreakdown
from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass
class BookingCreated(DomainEvent):
    """A booking was committed in PENDING status"""
    booking_id: UUID
    booking_code: str
    resource_id: UUID
    dates: DateRange
    total: str
    currency: str

    @classmethod
    def for_booking(cls, booking_id: UUID, booking_code: str, resource_id: UUID,
                    dates: DateRange, price: PriceBreakdown) -> 'BookingCreated':
        return cls(
            aggregate_id=booking_id,
            booking_id=booking_id,
            booking_code=booking_code,
            resource_id=resource_id,
            dates=dates,
            total=str(price.total.amount),
            currency=price.currency,
        )


@dataclass
class BookingConfirmed(DomainEvent):
    """Payment confirmed (PENDING -> CONFIRMED)"""
    booking_id: UUID
    resource_id: UUID
    payment_reference: str


@dataclass
class BookingCancelled(DomainEvent):
    """Booking cancelled; its dates were released in the same transaction"""
    booking_id: UUID
    resource_id: UUID
    dates: DateRange
    reason: str
    old_status: str


@dataclass
class BookingCompleted(DomainEvent):
    """Stay or activity finished (CONFIRMED -> COMPLETED)"""
    booking_id: UUID
    resource_id: UUID
