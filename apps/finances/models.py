"""Rate-rule settings stored as typed key/value rows."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any

from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


SERVICE_FEE_RATE = "pricing.serviceFeeRate"
TAX_RATE = "pricing.taxRate"
CURRENCY = "pricing.currency"
ROUNDING_QUANTUM = "pricing.roundingQuantum"
MINIMUM_STAY = "booking.minimumStay"

RATE_KEYS = (SERVICE_FEE_RATE, TAX_RATE, CURRENCY, ROUNDING_QUANTUM, MINIMUM_STAY)


class PricingSetting(models.Model):
    """Editable configuration value used when pricing bookings."""

    class DataType(models.TextChoices):
        STRING = "string", _("String")
        NUMBER = "number", _("Number")
        BOOLEAN = "boolean", _("Boolean")
        JSON = "json", _("JSON")

    class Category(models.TextChoices):
        PRICING = "pricing", _("Pricing")
        BOOKING = "booking", _("Booking")
        SYSTEM = "system", _("System")

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    data_type = models.CharField(max_length=16, choices=DataType.choices, default=DataType.STRING)
    category = models.CharField(max_length=16, choices=Category.choices, default=Category.PRICING)
    description = models.CharField(max_length=255, blank=True)
    is_editable = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Pricing setting")
        verbose_name_plural = _("Pricing settings")
        ordering = ["category", "key"]

    def __str__(self) -> str:
        return f"{self.key}={self.value}"

    def parsed_value(self) -> Any:
        """Return ``value`` converted according to ``data_type``.

        Raises ``ValueError`` when the stored text does not match its type.
        """
        raw = (self.value or "").strip()
        if self.data_type == self.DataType.NUMBER:
            try:
                return Decimal(raw)
            except InvalidOperation as exc:
                raise ValueError(f"{self.key}: {raw!r} is not a number") from exc
        if self.data_type == self.DataType.BOOLEAN:
            if raw.lower() in {"true", "1", "yes"}:
                return True
            if raw.lower() in {"false", "0", "no"}:
                return False
            raise ValueError(f"{self.key}: {raw!r} is not a boolean")
        if self.data_type == self.DataType.JSON:
            try:
                return json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{self.key}: invalid JSON") from exc
        return raw

    def clean(self) -> None:
        try:
            value = self.parsed_value()
        except ValueError as exc:
            raise ValidationError({"value": str(exc)}) from exc

        if self.key in (SERVICE_FEE_RATE, TAX_RATE):
            if not isinstance(value, Decimal) or not Decimal("0") <= value <= Decimal("1"):
                raise ValidationError({"value": _("Rate must be a number between 0 and 1.")})
        elif self.key == ROUNDING_QUANTUM:
            if not isinstance(value, Decimal) or value <= 0:
                raise ValidationError({"value": _("Rounding quantum must be a positive number.")})
        elif self.key == MINIMUM_STAY:
            if not isinstance(value, Decimal) or value != value.to_integral_value() or value < 1:
                raise ValidationError({"value": _("Minimum stay must be a whole number of at least 1 night.")})
        elif self.key == CURRENCY:
            if not isinstance(value, str) or len(value) != 3 or not value.isalpha():
                raise ValidationError({"value": _("Currency must be a 3-letter code.")})
