"""
Availability Index

Answers "is this interval free for this resource?" and performs the single
mutation that occupies an interval. Two implementations share one contract:

- InMemoryAvailabilityIndex: per-resource Inventory aggregates, each guarded
  by its own lock (bookings on different resources never contend)
- DjangoAvailabilityIndex: one ReservedNight row per occupied day under a
  unique (resource, night) constraint; the INSERT is the arbiter of conflict

is_available() never writes and may be stale by the time reserve() runs;
reserve() always re-validates.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from typing import Dict
from uuid import UUID
import logging
import threading

from django.db import IntegrityError, transaction  # type: ignore

from apps.bookings.domain.errors import DateRangeConflict
from apps.bookings.domain.inventory import BOOKED_REASON, Availability, Inventory
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)


class AbstractAvailabilityIndex(ABC):

    @abstractmethod
    def is_available(self, resource_id: UUID, dates: DateRange) -> Availability:
        """Non-mutating overlap query"""

    @abstractmethod
    def reserve(self, resource_id: UUID, dates: DateRange, booking_id: UUID) -> None:
        """
        Atomically re-validate and occupy the interval

        Raises:
            DateRangeConflict: the interval overlaps an active booking or a block;
                nothing was reserved
        """

    @abstractmethod
    def release(self, resource_id: UUID, booking_id: UUID) -> bool:
        """Free every day held by the booking"""

    @abstractmethod
    def block(self, resource_id: UUID, dates: DateRange, reason: str = '') -> None:
        """Take dates out of sale without a booking"""

    @abstractmethod
    def unblock(self, resource_id: UUID, dates: DateRange) -> int:
        """Remove blocked days inside the interval, returning how many were removed"""

    @abstractmethod
    def occupied_days(self, resource_id: UUID, dates: DateRange) -> Dict[date, str]:
        """Occupied day -> reason, limited to the interval"""


class InMemoryAvailabilityIndex(AbstractAvailabilityIndex):
    """Thread-safe index for embedded use and tests"""

    def __init__(self):
        self._inventories: Dict[UUID, Inventory] = {}
        self._locks: Dict[UUID, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

    def _lock_for(self, resource_id: UUID) -> threading.Lock:
        with self._registry_lock:
            return self._locks[resource_id]

    def _inventory(self, resource_id: UUID) -> Inventory:
        inventory = self._inventories.get(resource_id)
        if inventory is None:
            inventory = self._inventories.setdefault(resource_id, Inventory(resource_id=resource_id))
        return inventory

    def is_available(self, resource_id: UUID, dates: DateRange) -> Availability:
        with self._lock_for(resource_id):
            return self._inventory(resource_id).availability(dates)

    def reserve(self, resource_id: UUID, dates: DateRange, booking_id: UUID) -> None:
        with self._lock_for(resource_id):
            self._inventory(resource_id).allocate(booking_id, dates)
        logger.debug(f"Reserved {dates} on resource {resource_id} for booking {booking_id}")

    def release(self, resource_id: UUID, booking_id: UUID) -> bool:
        with self._lock_for(resource_id):
            return self._inventory(resource_id).deallocate(booking_id)

    def block(self, resource_id: UUID, dates: DateRange, reason: str = '') -> None:
        with self._lock_for(resource_id):
            self._inventory(resource_id).block(dates, reason)

    def unblock(self, resource_id: UUID, dates: DateRange) -> int:
        with self._lock_for(resource_id):
            return self._inventory(resource_id).unblock(dates)

    def occupied_days(self, resource_id: UUID, dates: DateRange) -> Dict[date, str]:
        with self._lock_for(resource_id):
            return self._inventory(resource_id).occupied_days(dates)


class DjangoAvailabilityIndex(AbstractAvailabilityIndex):
    """
    ORM-backed index

    reserve() bulk-inserts the nights inside a savepoint. When another
    transaction already holds any of them the unique constraint raises
    IntegrityError, the savepoint rolls back (so nothing is partially
    reserved) and the conflicting bookings are re-read for the error.
    """

    def _nights(self, resource_id: UUID, dates: DateRange):
        from apps.bookings.models import ReservedNight

        return ReservedNight.objects.filter(
            resource_id=resource_id,
            night__gte=dates.start_date,
            night__lt=dates.end_date,
        )

    def is_available(self, resource_id: UUID, dates: DateRange) -> Availability:
        rows = list(self._nights(resource_id, dates).values_list('booking_id', 'reason').order_by('night'))
        conflicts = []
        blocked_reasons = []
        for booking_id, reason in rows:
            if booking_id is None:
                if reason not in blocked_reasons:
                    blocked_reasons.append(reason)
            elif booking_id not in conflicts:
                conflicts.append(booking_id)
        return Availability(
            free=not rows,
            conflicts=tuple(conflicts),
            blocked_reasons=tuple(blocked_reasons),
        )

    def reserve(self, resource_id: UUID, dates: DateRange, booking_id: UUID) -> None:
        from apps.bookings.models import ReservedNight

        self._insert(resource_id, dates, booking_id, ReservedNight.Source.BOOKING, BOOKED_REASON)
        logger.debug(f"Reserved {len(dates)} night(s) on resource {resource_id} for booking {booking_id}")

    def release(self, resource_id: UUID, booking_id: UUID) -> bool:
        from apps.bookings.models import ReservedNight

        deleted, _ = ReservedNight.objects.filter(resource_id=resource_id, booking_id=booking_id).delete()
        return deleted > 0

    def block(self, resource_id: UUID, dates: DateRange, reason: str = '') -> None:
        from apps.bookings.models import ReservedNight

        self._insert(resource_id, dates, None, ReservedNight.Source.BLOCK, reason or 'blocked')
        logger.info(f"Blocked {dates} on resource {resource_id}: {reason or 'blocked'}")

    def unblock(self, resource_id: UUID, dates: DateRange) -> int:
        deleted, _ = self._nights(resource_id, dates).filter(booking__isnull=True).delete()
        logger.info(f"Unblocked {deleted} day(s) in {dates} on resource {resource_id}")
        return deleted

    def occupied_days(self, resource_id: UUID, dates: DateRange) -> Dict[date, str]:
        return dict(self._nights(resource_id, dates).values_list('night', 'reason'))

    def _insert(self, resource_id, dates, booking_id, source, reason):
        from apps.bookings.models import ReservedNight

        rows = [
            ReservedNight(
                resource_id=resource_id,
                night=night,
                booking_id=booking_id,
                source=source,
                reason=reason,
            )
            for night in dates.days()
        ]
        try:
            with transaction.atomic():
                ReservedNight.objects.bulk_create(rows)
        except IntegrityError as e:
            taken = self.is_available(resource_id, dates)
            logger.info(
                f"Unique constraint rejected {dates} on resource {resource_id}; "
                f"held by {len(taken.conflicts)} booking(s)"
            )
            raise DateRangeConflict(
                f"Dates {dates} are not available for resource {resource_id}",
                conflicts=taken.conflicts,
                blocked_reasons=list(taken.blocked_reasons),
            ) from e
