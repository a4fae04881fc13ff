"""Tests for the per-resource Inventory aggregate."""

from __future__ import annotations

import uuid
from datetime import date

from django.test import SimpleTestCase

from apps.bookings.domain.errors import DateRangeConflict, InvalidDateRange, InvalidRequest
from apps.bookings.domain.inventory import Inventory, booking_interval
from shared.domain.value_objects import DateRange


def span(start_day: int, end_day: int) -> DateRange:
    return DateRange(date(2024, 1, start_day), date(2024, 1, end_day))


class BookingIntervalTests(SimpleTestCase):

    def test_check_out_must_follow_check_in(self) -> None:
        with self.assertRaises(InvalidDateRange):
            booking_interval(date(2024, 1, 10), date(2024, 1, 10))
        with self.assertRaises(InvalidDateRange):
            booking_interval(date(2024, 1, 12), date(2024, 1, 10))

    def test_invalid_date_range_is_an_invalid_request(self) -> None:
        with self.assertRaises(InvalidRequest):
            booking_interval(date(2024, 1, 12), date(2024, 1, 10))

    def test_valid_interval(self) -> None:
        self.assertEqual(len(booking_interval(date(2024, 1, 10), date(2024, 1, 12))), 2)


class InventoryTests(SimpleTestCase):

    def setUp(self) -> None:
        self.inventory = Inventory(resource_id=uuid.uuid4())
        self.first = uuid.uuid4()
        self.inventory.allocate(self.first, span(10, 13))

    def test_overlapping_allocation_is_refused(self) -> None:
        with self.assertRaises(DateRangeConflict) as ctx:
            self.inventory.allocate(uuid.uuid4(), span(12, 15))

        self.assertEqual(ctx.exception.conflicts, (self.first,))
        self.assertEqual(len(self.inventory.allocations), 1)

    def test_back_to_back_allocation_is_allowed(self) -> None:
        self.inventory.allocate(uuid.uuid4(), span(13, 15))
        self.inventory.allocate(uuid.uuid4(), span(8, 10))

        self.assertEqual(len(self.inventory.allocations), 3)

    def test_availability_reports_conflicting_bookings(self) -> None:
        availability = self.inventory.availability(span(9, 11))

        self.assertFalse(availability.free)
        self.assertEqual(availability.conflicts, (self.first,))
        self.assertTrue(self.inventory.availability(span(13, 20)).free)

    def test_deallocate_frees_dates(self) -> None:
        self.assertTrue(self.inventory.deallocate(self.first))
        self.assertFalse(self.inventory.deallocate(self.first))
        self.assertTrue(self.inventory.can_allocate(span(10, 13)))

    def test_blocks_report_reasons_without_booking_ids(self) -> None:
        self.inventory.block(span(20, 22), "maintenance")

        availability = self.inventory.availability(span(21, 23))

        self.assertFalse(availability.free)
        self.assertEqual(availability.conflicts, ())
        self.assertEqual(availability.blocked_reasons, ("maintenance",))

        with self.assertRaises(DateRangeConflict):
            self.inventory.allocate(uuid.uuid4(), span(21, 23))

        self.assertEqual(self.inventory.unblock(span(20, 22)), 2)
        self.assertTrue(self.inventory.can_allocate(span(20, 22)))

    def test_occupied_days_are_clipped_to_window(self) -> None:
        self.inventory.block(span(15, 16), "owner stay")

        occupied = self.inventory.occupied_days(span(12, 16))

        self.assertEqual(
            occupied,
            {date(2024, 1, 12): "booked", date(2024, 1, 15): "owner stay"},
        )

    def test_unblock_sub_range_keeps_remaining_days(self) -> None:
        april = DateRange(date(2024, 4, 1), date(2024, 4, 4))
        self.inventory.block(april, "maintenance")

        freed = self.inventory.unblock(DateRange(date(2024, 4, 1), date(2024, 4, 3)))

        self.assertEqual(freed, 2)
        self.assertEqual(self.inventory.occupied_days(april), {date(2024, 4, 3): "maintenance"})

    def test_unblock_middle_of_block_splits_it(self) -> None:
        self.inventory.block(span(20, 25), "owner stay")

        self.assertEqual(self.inventory.unblock(span(21, 23)), 2)

        self.assertTrue(self.inventory.can_allocate(span(21, 23)))
        self.assertEqual(
            self.inventory.occupied_days(span(20, 25)),
            {
                date(2024, 1, 20): "owner stay",
                date(2024, 1, 23): "owner stay",
                date(2024, 1, 24): "owner stay",
            },
        )
        self.assertEqual(self.inventory.unblock(span(10, 13)), 0)
        self.assertIsNotNone(self.inventory.get_allocation(self.first))
