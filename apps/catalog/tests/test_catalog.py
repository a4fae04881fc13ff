"""Tests for catalog snapshots and lookups."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase

from apps.catalog.domain import CatalogItem, InMemoryCatalog, ResourceKind, ResourceSnapshot
from apps.catalog.models import AddOn, Resource
from apps.catalog.services import DjangoCatalog


class ResourceModelTests(TestCase):

    def test_slug_is_generated(self) -> None:
        first = Resource.objects.create(name="Cozy Cabin", base_price=Decimal("80.00"))
        second = Resource.objects.create(name="Cozy Cabin", base_price=Decimal("90.00"))

        self.assertTrue(first.slug.startswith("cozy-cabin-"))
        self.assertNotEqual(first.slug, second.slug)

    def test_activity_snapshot_has_no_cleaning_fee(self) -> None:
        activity = Resource.objects.create(
            kind=Resource.Kind.ACTIVITY,
            name="Kayaking",
            base_price=Decimal("45.00"),
            cleaning_fee=Decimal("10.00"),
            max_occupancy=8,
            duration_days=2,
        )

        snapshot = activity.to_snapshot()

        self.assertIs(snapshot.kind, ResourceKind.ACTIVITY)
        self.assertIsNone(snapshot.cleaning_fee)
        self.assertEqual(snapshot.duration_days, 2)
        self.assertEqual(snapshot.min_participants, 1)
        self.assertFalse(snapshot.is_property)


class DjangoCatalogTests(TestCase):

    def setUp(self) -> None:
        self.catalog = DjangoCatalog()
        self.house = Resource.objects.create(
            name="Beach house",
            base_price=Decimal("150.00"),
            cleaning_fee=Decimal("60.00"),
            max_occupancy=6,
            minimum_stay=2,
        )
        self.tour = Resource.objects.create(kind=Resource.Kind.ACTIVITY, name="City tour", base_price=Decimal("20.00"))

    def test_get_resource(self) -> None:
        snapshot = self.catalog.get_resource(self.house.id)

        self.assertEqual(snapshot.base_price, Decimal("150.00"))
        self.assertEqual(snapshot.cleaning_fee, Decimal("60.00"))
        self.assertEqual(snapshot.minimum_stay, 2)
        self.assertTrue(snapshot.is_property)
        self.assertIsNone(self.catalog.get_resource(uuid.uuid4()))

    def test_get_activity_only_returns_activities(self) -> None:
        self.assertEqual(self.catalog.get_activity(self.tour.id).name, "City tour")
        self.assertIsNone(self.catalog.get_activity(self.house.id))

    def test_get_add_on(self) -> None:
        add_on = AddOn.objects.create(name="Late checkout", price=Decimal("30.00"), is_active=False)

        item = self.catalog.get_add_on(add_on.id)

        self.assertEqual(item, CatalogItem(id=add_on.id, name="Late checkout", unit_price=Decimal("30.00"), is_active=False))
        self.assertIsNone(self.catalog.get_add_on(uuid.uuid4()))


class InMemoryCatalogTests(SimpleTestCase):

    def test_lookup(self) -> None:
        resource = ResourceSnapshot(
            id=uuid.uuid4(),
            kind=ResourceKind.PROPERTY,
            name="Loft",
            base_price=Decimal("70"),
            max_occupancy=2,
        )
        item = CatalogItem(id=uuid.uuid4(), name="Parking", unit_price=Decimal("5"))
        catalog = InMemoryCatalog([resource])
        catalog.add_add_on(item)

        self.assertIs(catalog.get_resource(resource.id), resource)
        self.assertIs(catalog.get_add_on(item.id), item)
        self.assertIsNone(catalog.get_activity(resource.id))


class ResourceConstraintTests(TestCase):

    def test_minimum_participants_snapshot(self) -> None:
        tour = Resource.objects.create(
            kind=Resource.Kind.ACTIVITY,
            name="Wine tasting",
            base_price=Decimal("35.00"),
            max_occupancy=12,
            min_participants=6,
        )

        self.assertEqual(DjangoCatalog().get_activity(tour.id).min_participants, 6)

    def test_minimum_participants_cannot_exceed_capacity(self) -> None:
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Resource.objects.create(
                    kind=Resource.Kind.ACTIVITY,
                    name="Impossible tour",
                    base_price=Decimal("10.00"),
                    max_occupancy=2,
                    min_participants=3,
                )
