"""Catalog models: bookable resources and add-ons."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain import CatalogItem, ResourceKind, ResourceSnapshot


class Resource(models.Model):
    """A property (priced per night) or an activity (priced per participant)."""

    class Kind(models.TextChoices):
        PROPERTY = ResourceKind.PROPERTY.value, _("Property")
        ACTIVITY = ResourceKind.ACTIVITY.value, _("Activity")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=16, choices=Kind.choices, default=Kind.PROPERTY)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True)
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Per night for properties, per participant for activities."),
    )
    max_occupancy = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("Maximum guests (properties) or participants (activities)."),
    )
    min_participants = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("Fewest participants an activity runs with. Ignored for properties."),
    )
    minimum_stay = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text=_("Nights. Empty means the configured default minimum stay."),
    )
    cleaning_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    security_deposit = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    duration_days = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("Days an activity booking occupies, starting on the booked date."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Resource")
        verbose_name_plural = _("Resources")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_occupancy__gte=1),
                name="resource_positive_occupancy",
            ),
            models.CheckConstraint(
                condition=models.Q(duration_days__gte=1),
                name="resource_positive_duration",
            ),
            models.CheckConstraint(
                condition=models.Q(min_participants__gte=1, min_participants__lte=models.F("max_occupancy")),
                name="resource_participant_range",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            self.slug = f"{slugify(self.name)[:200]}-{uuid.uuid4().hex[:6]}"
        super().save(*args, **kwargs)

    def to_snapshot(self) -> ResourceSnapshot:
        return ResourceSnapshot(
            id=self.id,
            kind=ResourceKind(self.kind),
            name=self.name,
            base_price=self.base_price,
            max_occupancy=self.max_occupancy,
            minimum_stay=self.minimum_stay,
            cleaning_fee=self.cleaning_fee if self.kind == self.Kind.PROPERTY else None,
            security_deposit=self.security_deposit,
            duration_days=self.duration_days,
            is_active=self.is_active,
            min_participants=self.min_participants,
        )


class AddOn(models.Model):
    """Extra that can be added to a stay (breakfast, airport transfer, …)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Add-on")
        verbose_name_plural = _("Add-ons")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def to_item(self) -> CatalogItem:
        return CatalogItem(id=self.id, name=self.name, unit_price=self.price, is_active=self.is_active)
