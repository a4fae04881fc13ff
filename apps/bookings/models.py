"""Booking persistence models: bookings, their selections and reserved nights."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def _money_field(**kwargs):
    return models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"), **kwargs)


class Booking(models.Model):
    """A committed reservation of a property stay or an activity date."""

    class Kind(models.TextChoices):
        PROPERTY = "property", _("Property")
        ACTIVITY = "activity", _("Activity")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLED = "cancelled", _("Cancelled")
        COMPLETED = "completed", _("Completed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    resource = models.ForeignKey(
        "catalog.Resource",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    kind = models.CharField(max_length=16, choices=Kind.choices)
    check_in = models.DateField()
    check_out = models.DateField(
        help_text=_("Exclusive. For activities: booked date plus the activity duration."),
    )
    guest_count = models.PositiveSmallIntegerField(default=1)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )

    contact_name = models.CharField(max_length=255, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=32, blank=True)
    notes = models.TextField(blank=True)

    currency = models.CharField(max_length=3, default="USD")
    nights = models.PositiveSmallIntegerField(default=0)
    unit_price = _money_field()
    subtotal = _money_field()
    add_ons_total = _money_field()
    activities_total = _money_field()
    cleaning_fee = _money_field()
    service_fee = _money_field()
    tax = _money_field()
    total = _money_field()
    service_fee_rate = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0"))
    tax_rate = models.DecimalField(max_digits=6, decimal_places=4, default=Decimal("0"))
    security_deposit = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    payment_reference = models.CharField(max_length=128, blank=True)
    cancellation_reason = models.TextField(blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_check_out_after_check_in",
            ),
            models.CheckConstraint(
                condition=models.Q(guest_count__gte=1),
                name="booking_positive_guest_count",
            ),
        ]
        indexes = [
            models.Index(fields=["resource", "status"]),
            models.Index(fields=["check_in", "check_out"]),
        ]

    def __str__(self) -> str:
        return f"{self.booking_code} ({self.get_status_display()})"


class BookingSelection(models.Model):
    """An add-on or activity line with the price captured at booking time."""

    class Kind(models.TextChoices):
        ADD_ON = "add_on", _("Add-on")
        ACTIVITY = "activity", _("Activity")

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="selections")
    kind = models.CharField(max_length=16, choices=Kind.choices)
    item_id = models.UUIDField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveSmallIntegerField(
        help_text=_("Quantity for add-ons, participants for activities."),
    )

    class Meta:
        verbose_name = _("Booking selection")
        verbose_name_plural = _("Booking selections")
        ordering = ["booking", "kind", "id"]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.item_id} x{self.quantity}"


class ReservedNight(models.Model):
    """One occupied day of a resource.

    The unique (resource, night) constraint is what decides between two
    writers racing for overlapping dates. Rows without a booking are manual
    blocks.
    """

    class Source(models.TextChoices):
        BOOKING = "booking", _("Booking")
        BLOCK = "block", _("Block")

    resource = models.ForeignKey(
        "catalog.Resource",
        on_delete=models.CASCADE,
        related_name="reserved_nights",
    )
    night = models.DateField()
    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="reserved_nights",
    )
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.BOOKING)
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Reserved night")
        verbose_name_plural = _("Reserved nights")
        ordering = ["resource", "night"]
        constraints = [
            models.UniqueConstraint(
                fields=["resource", "night"],
                name="unique_reserved_night",
            ),
        ]
        indexes = [
            models.Index(fields=["booking"]),
        ]

    def __str__(self) -> str:
        return f"{self.resource_id} @ {self.night} ({self.source})"
