"""Access to the ``BOOKING_ENGINE`` settings block with built-in defaults."""

from __future__ import annotations

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "RATE_CACHE_TTL": 300,
    "RATE_DEFAULTS": {
        "pricing.serviceFeeRate": "0.10",
        "pricing.taxRate": "0.15",
        "pricing.currency": "USD",
        "pricing.roundingQuantum": "0.01",
        "booking.minimumStay": 1,
    },
    "COMMIT_MAX_ATTEMPTS": 3,
    "CALENDAR_MAX_DAYS": 366,
}


def engine_setting(name: str) -> Any:
    """Return ``settings.BOOKING_ENGINE[name]``, falling back to DEFAULTS."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown booking engine setting: {name}")
    configured = getattr(settings, "BOOKING_ENGINE", {}) or {}
    value = configured.get(name, DEFAULTS[name])
    if isinstance(DEFAULTS[name], dict):
        return {**DEFAULTS[name], **value}
    return value


__all__ = ["DEFAULTS", "engine_setting"]
