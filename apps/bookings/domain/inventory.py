"""
Inventory Aggregate

Holds, per bookable resource, the date intervals that are occupied by
active bookings (PENDING or CONFIRMED) or by manual blocks, and answers
overlap questions about them.

Two intervals [a, b) and [c, d) overlap iff a < d and c < b, so back-to-back
stays (one's check-out equals the other's check-in) never conflict.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Tuple
from uuid import UUID, uuid4

from apps.bookings.domain.errors import DateRangeConflict, InvalidDateRange
from shared.domain.value_objects import DateRange

BOOKED_REASON = 'booked'


def booking_interval(start: date, end: date) -> DateRange:
    """
    Build the half-open interval for a request

    Zero-length or inverted ranges are rejected here, before any overlap
    test, with InvalidDateRange rather than a conflict.
    """
    if start is None or end is None:
        raise InvalidDateRange("Both start and end dates are required")
    if end <= start:
        raise InvalidDateRange(
            f"Check-out ({end}) must be after check-in ({start})",
            check_in=str(start),
            check_out=str(end),
        )
    return DateRange(start, end)


@dataclass(frozen=True)
class Availability:
    """Answer to an availability query"""
    free: bool
    conflicts: Tuple[UUID, ...] = ()
    blocked_reasons: Tuple[str, ...] = ()


@dataclass
class Allocation:
    """
    An occupied interval

    booking_id is None for manual blocks (maintenance, owner use).
    """
    dates: DateRange
    booking_id: UUID | None = None
    reason: str = BOOKED_REASON
    id: UUID = field(default_factory=uuid4)

    @property
    def is_block(self) -> bool:
        return self.booking_id is None


@dataclass
class Inventory:
    """
    Occupied intervals of a single resource

    Key invariant: allocations never overlap each other. allocate() and
    block() are the only ways in and both refuse overlapping intervals.
    """

    resource_id: UUID
    allocations: List[Allocation] = field(default_factory=list)

    def conflicts_with(self, dates: DateRange) -> List[Allocation]:
        return [a for a in list(self.allocations) if a.dates.overlaps_with(dates)]

    def availability(self, dates: DateRange) -> Availability:
        overlapping = self.conflicts_with(dates)
        return Availability(
            free=not overlapping,
            conflicts=tuple(a.booking_id for a in overlapping if not a.is_block),
            blocked_reasons=tuple(a.reason for a in overlapping if a.is_block),
        )

    def can_allocate(self, dates: DateRange) -> bool:
        return not self.conflicts_with(dates)

    def allocate(self, booking_id: UUID, dates: DateRange) -> Allocation:
        """
        Occupy dates for a booking

        Raises:
            DateRangeConflict: the interval overlaps an existing allocation
        """
        self._ensure_free(dates)
        allocation = Allocation(dates=dates, booking_id=booking_id)
        self.allocations.append(allocation)
        return allocation

    def block(self, dates: DateRange, reason: str) -> Allocation:
        self._ensure_free(dates)
        allocation = Allocation(dates=dates, reason=reason or 'blocked')
        self.allocations.append(allocation)
        return allocation

    def deallocate(self, booking_id: UUID) -> bool:
        """Free a booking's dates; False when the booking held none"""
        allocation = self.get_allocation(booking_id)
        if allocation is None:
            return False
        self.allocations.remove(allocation)
        return True

    def unblock(self, dates: DateRange) -> int:
        """Free blocked days inside the range, returning how many were freed.

        A block that extends past either end of the range is split, so the
        days outside it stay blocked under the original reason.
        """
        freed = 0
        for block in [a for a in self.conflicts_with(dates) if a.is_block]:
            self.allocations.remove(block)
            if block.dates.start_date < dates.start_date:
                self.allocations.append(
                    Allocation(dates=DateRange(block.dates.start_date, dates.start_date), reason=block.reason)
                )
            if dates.end_date < block.dates.end_date:
                self.allocations.append(
                    Allocation(dates=DateRange(dates.end_date, block.dates.end_date), reason=block.reason)
                )
            freed += sum(1 for day in block.dates.days() if dates.contains(day))
        return freed

    def get_allocation(self, booking_id: UUID) -> Allocation | None:
        return next((a for a in self.allocations if a.booking_id == booking_id), None)

    def occupied_days(self, dates: DateRange) -> dict[date, str]:
        """Day -> reason for every occupied day inside the window"""
        occupied: dict[date, str] = {}
        for allocation in self.conflicts_with(dates):
            for day in allocation.dates.days():
                if dates.contains(day):
                    occupied[day] = allocation.reason
        return occupied

    def _ensure_free(self, dates: DateRange):
        availability = self.availability(dates)
        if not availability.free:
            raise DateRangeConflict(
                f"Dates {dates} are not available for resource {self.resource_id}",
                conflicts=availability.conflicts,
                blocked_reasons=list(availability.blocked_reasons),
            )

    def __repr__(self):
        return f"Inventory(resource_id={self.resource_id}, allocations={len(self.allocations)})"
