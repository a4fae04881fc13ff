"""Database-backed availability index and booking repository."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    ReservationCoordinator,
)
from apps.bookings.domain.entities import BookingStatus, PropertyBookingRequest, SelectionRequest
from apps.bookings.domain.errors import DateRangeConflict
from apps.bookings.domain.inventory import Availability
from apps.bookings.infrastructure.availability import DjangoAvailabilityIndex
from apps.bookings.infrastructure.repositories import DjangoBookingRepository
from apps.bookings.models import Booking, ReservedNight
from apps.catalog.models import AddOn, Resource
from apps.catalog.services import DjangoCatalog
from apps.finances.rates import build_rate_rules
from shared.domain.value_objects import DateRange


class DefaultRates:

    def current_rates(self):
        return build_rate_rules({})


class StaleIndex(DjangoAvailabilityIndex):
    """Answers the next ``stale`` availability queries with "free"."""

    def __init__(self, stale: int = 0) -> None:
        self.stale = stale

    def is_available(self, resource_id, dates):
        if self.stale:
            self.stale -= 1
            return Availability(free=True)
        return super().is_available(resource_id, dates)


class DjangoIndexTests(TestCase):

    def setUp(self) -> None:
        self.resource = Resource.objects.create(
            kind=Resource.Kind.PROPERTY,
            name="Lake house",
            base_price=Decimal("120.00"),
            max_occupancy=4,
            cleaning_fee=Decimal("40.00"),
        )
        self.index = DjangoAvailabilityIndex()
        self.bookings = DjangoBookingRepository()

    def coordinator(self, index=None) -> ReservationCoordinator:
        return ReservationCoordinator(
            catalog=DjangoCatalog(),
            availability=index or self.index,
            bookings=self.bookings,
            rates=DefaultRates(),
        )

    def stay(self, check_in: date, check_out: date, **kwargs) -> PropertyBookingRequest:
        return PropertyBookingRequest(
            resource_id=self.resource.id,
            check_in=check_in,
            check_out=check_out,
            guests=2,
            **kwargs,
        )

    def test_reserve_writes_one_row_per_night(self) -> None:
        booking = self.coordinator().create_booking(self.stay(date(2024, 3, 1), date(2024, 3, 4)))

        nights = list(ReservedNight.objects.filter(booking_id=booking.id).values_list("night", flat=True))
        self.assertEqual(nights, [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)])
        self.assertFalse(self.index.is_available(self.resource.id, DateRange(date(2024, 3, 3), date(2024, 3, 5))).free)
        self.assertTrue(self.index.is_available(self.resource.id, DateRange(date(2024, 3, 4), date(2024, 3, 6))).free)

    def test_unique_constraint_decides_when_pre_check_is_stale(self) -> None:
        first = self.coordinator().create_booking(self.stay(date(2024, 3, 1), date(2024, 3, 4)))

        with self.assertRaises(DateRangeConflict) as ctx:
            self.coordinator(StaleIndex(stale=1)).create_booking(self.stay(date(2024, 3, 3), date(2024, 3, 6)))

        self.assertEqual(ctx.exception.conflicts, (first.id,))
        self.assertEqual(Booking.objects.count(), 1)
        # the losing attempt left no partial reservation behind
        self.assertEqual(ReservedNight.objects.count(), 3)
        self.assertFalse(ReservedNight.objects.filter(night=date(2024, 3, 5)).exists())

    def test_cancel_releases_nights(self) -> None:
        booking = self.coordinator().create_booking(self.stay(date(2024, 3, 1), date(2024, 3, 4)))
        handler = CancelBookingHandler(self.bookings, self.index)

        handler.handle(CancelBookingCommand(booking.id, "guest request"))

        self.assertEqual(Booking.objects.get(pk=booking.id).status, Booking.Status.CANCELLED)
        self.assertFalse(ReservedNight.objects.exists())
        self.coordinator().create_booking(self.stay(date(2024, 3, 2), date(2024, 3, 3)))

    def test_block_and_unblock(self) -> None:
        dates = DateRange(date(2024, 4, 1), date(2024, 4, 4))
        self.index.block(self.resource.id, dates, "maintenance")

        availability = self.index.is_available(self.resource.id, DateRange(date(2024, 4, 3), date(2024, 4, 5)))
        self.assertFalse(availability.free)
        self.assertEqual(availability.conflicts, ())
        self.assertEqual(availability.blocked_reasons, ("maintenance",))

        with self.assertRaises(DateRangeConflict):
            self.index.block(self.resource.id, DateRange(date(2024, 4, 2), date(2024, 4, 6)), "owner use")

        removed = self.index.unblock(self.resource.id, DateRange(date(2024, 4, 1), date(2024, 4, 3)))
        self.assertEqual(removed, 2)
        self.assertEqual(
            self.index.occupied_days(self.resource.id, DateRange(date(2024, 4, 1), date(2024, 4, 10))),
            {date(2024, 4, 3): "maintenance"},
        )

    def test_unblock_keeps_booked_nights(self) -> None:
        self.coordinator().create_booking(self.stay(date(2024, 3, 1), date(2024, 3, 3)))

        removed = self.index.unblock(self.resource.id, DateRange(date(2024, 3, 1), date(2024, 3, 3)))

        self.assertEqual(removed, 0)
        self.assertEqual(ReservedNight.objects.count(), 2)

    def test_repository_round_trip(self) -> None:
        add_on = AddOn.objects.create(name="Breakfast", price=Decimal("12.50"))
        booking = self.coordinator().create_booking(
            self.stay(date(2024, 3, 1), date(2024, 3, 3), add_ons=(SelectionRequest(add_on.id, 2),))
        )

        stored = self.bookings.get(booking.id)

        self.assertEqual(stored.booking_code, booking.booking_code)
        self.assertEqual(stored.status, BookingStatus.PENDING)
        self.assertEqual(stored.dates, booking.dates)
        self.assertEqual(stored.price, booking.price)
        self.assertEqual(stored.add_ons, booking.add_ons)
        self.assertEqual([b.id for b in self.bookings.list(resource_id=self.resource.id)], [booking.id])
        self.assertEqual(self.bookings.list(status=BookingStatus.CANCELLED), [])
