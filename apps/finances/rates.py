"""
Rate Rule Provider

Supplies the RateRules snapshot the booking engine prices with. Snapshots
are cached for RATE_CACHE_TTL seconds. When the settings store cannot be
read, the provider degrades instead of failing the booking attempt:

    fresh cache -> database -> last-known-good -> configured defaults
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from django.core.cache import cache as default_cache  # type: ignore
from django.db import DatabaseError  # type: ignore

from apps.bookings.domain.errors import RateConfigUnavailable
from apps.bookings.domain.pricing import RateRules
from shared.infrastructure.config import engine_setting

from .models import (
    CURRENCY,
    MINIMUM_STAY,
    RATE_KEYS,
    ROUNDING_QUANTUM,
    SERVICE_FEE_RATE,
    TAX_RATE,
    PricingSetting,
)

logger = logging.getLogger(__name__)

CACHE_KEY = "finances:rate_rules"
LAST_GOOD_CACHE_KEY = "finances:rate_rules:last_good"


def load_rate_settings() -> dict[str, Any]:
    """Read the rate keys from PricingSetting rows."""
    values: dict[str, Any] = {}
    for setting in PricingSetting.objects.filter(key__in=RATE_KEYS):
        try:
            values[setting.key] = setting.parsed_value()
        except ValueError as exc:
            raise RateConfigUnavailable(str(exc), key=setting.key) from exc
    return values


def build_rate_rules(values: Mapping[str, Any]) -> RateRules:
    """Merge stored values over the defaults and validate them."""
    merged = {**engine_setting("RATE_DEFAULTS"), **values}
    try:
        service_fee_rate = Decimal(str(merged[SERVICE_FEE_RATE]))
        tax_rate = Decimal(str(merged[TAX_RATE]))
        quantum = Decimal(str(merged[ROUNDING_QUANTUM]))
        minimum_stay = Decimal(str(merged[MINIMUM_STAY]))
    except (InvalidOperation, KeyError) as exc:
        raise RateConfigUnavailable(f"Unparsable rate rules: {exc!r}") from exc

    currency = str(merged[CURRENCY]).strip().upper()
    if not (Decimal("0") <= service_fee_rate <= Decimal("1")) or not (Decimal("0") <= tax_rate <= Decimal("1")):
        raise RateConfigUnavailable("Service fee and tax rates must be between 0 and 1")
    if quantum <= 0:
        raise RateConfigUnavailable("Rounding quantum must be positive")
    if minimum_stay < 1 or minimum_stay != minimum_stay.to_integral_value():
        raise RateConfigUnavailable("Minimum stay must be a whole number of at least 1")
    if len(currency) != 3 or not currency.isalpha():
        raise RateConfigUnavailable(f"Invalid currency code {currency!r}")

    return RateRules(
        service_fee_rate=service_fee_rate,
        tax_rate=tax_rate,
        currency=currency,
        default_minimum_stay=int(minimum_stay),
        rounding_quantum=quantum,
    )


class RateRuleProvider:
    """Cached access to the current rate rules."""

    def __init__(self, loader: Callable[[], Mapping[str, Any]] | None = None, cache=None) -> None:
        self._loader = loader or load_rate_settings
        self._cache = cache

    @property
    def cache(self):
        return self._cache if self._cache is not None else default_cache

    def current_rates(self) -> RateRules:
        """Return the cached snapshot, loading it on a miss. Never raises."""
        rules = self._cache_get(CACHE_KEY)
        if rules is not None:
            return rules
        return self.refresh()

    def refresh(self) -> RateRules:
        """Reload from the store and re-warm the cache."""
        try:
            rules = build_rate_rules(self._loader())
        except (DatabaseError, RateConfigUnavailable) as exc:
            return self._fallback(exc)

        self._cache_set(CACHE_KEY, rules, engine_setting("RATE_CACHE_TTL"))
        self._cache_set(LAST_GOOD_CACHE_KEY, rules, None)
        logger.debug(f"Rate rules refreshed: {rules}")
        return rules

    def invalidate(self) -> None:
        try:
            self.cache.delete(CACHE_KEY)
        except Exception as exc:
            logger.warning(f"Rate cache delete failed: {exc}")

    def _fallback(self, exc: Exception) -> RateRules:
        last_good = self._cache_get(LAST_GOOD_CACHE_KEY)
        if last_good is not None:
            logger.warning(f"Rate config unavailable ({exc}); using last-known-good rates")
            return last_good
        logger.warning(f"Rate config unavailable ({exc}); using default rates")
        return build_rate_rules({})

    # Cache backends raise their own client errors; an outage reads as a miss.
    def _cache_get(self, key: str):
        try:
            return self.cache.get(key)
        except Exception as exc:
            logger.warning(f"Rate cache read failed for {key}: {exc}")
            return None

    def _cache_set(self, key: str, rules: RateRules, timeout) -> None:
        try:
            self.cache.set(key, rules, timeout)
        except Exception as exc:
            logger.warning(f"Rate cache write failed for {key}: {exc}")


rate_provider = RateRuleProvider()
