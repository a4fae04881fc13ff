"""
Booking Queries

Read-only views over the availability index. Nothing here reserves or
locks; results may be stale by the time a booking is committed.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List
from uuid import UUID

from apps.bookings.domain.errors import InvalidDateRange, InvalidRequest, ResourceNotFound
from shared.domain.value_objects import DateRange


@dataclass(frozen=True)
class CalendarDay:
    date: date
    available: bool
    price: Decimal
    reason: str = ''

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'available': self.available,
            'price': str(self.price),
            'reason': self.reason or None,
        }


class AvailabilityCalendar:
    """Per-day availability for calendar UIs (both ends inclusive)"""

    def __init__(self, catalog, availability, max_days: int = 366):
        self.catalog = catalog
        self.availability = availability
        self.max_days = max_days

    def for_resource(self, resource_id: UUID, start: date, end: date) -> List[CalendarDay]:
        if start is None or end is None:
            raise InvalidDateRange("Both 'from' and 'to' dates are required")
        if end < start:
            raise InvalidDateRange(f"'to' ({end}) must not be before 'from' ({start})")
        window = DateRange(start, end + timedelta(days=1))
        if len(window) > self.max_days:
            raise InvalidRequest(
                f"Calendar window is limited to {self.max_days} days",
                max_days=self.max_days,
            )

        resource = self.catalog.get_resource(resource_id)
        if resource is None or not resource.is_active:
            raise ResourceNotFound(f"Resource {resource_id} not found or not active", resource=str(resource_id))

        occupied = self.availability.occupied_days(resource_id, window)
        return [
            CalendarDay(
                date=day,
                available=day not in occupied,
                price=resource.base_price,
                reason=occupied.get(day, ''),
            )
            for day in window.days()
        ]
