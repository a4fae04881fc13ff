"""Tests for rate rule loading, caching and fallbacks."""

from __future__ import annotations

from decimal import Decimal

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase

from apps.bookings.domain.errors import RateConfigUnavailable
from apps.bookings.domain.pricing import RateRules
from apps.finances.models import (
    CURRENCY,
    MINIMUM_STAY,
    ROUNDING_QUANTUM,
    SERVICE_FEE_RATE,
    TAX_RATE,
    PricingSetting,
)
from apps.finances.rates import RateRuleProvider, build_rate_rules, rate_provider
from apps.finances.tasks import refresh_rate_rules

DEFAULT_RULES = RateRules(service_fee_rate=Decimal("0.10"), tax_rate=Decimal("0.15"), currency="USD")


class BrokenCache:
    """Cache client whose backend is unreachable."""

    def get(self, key, default=None):
        raise ConnectionError("redis down")

    def set(self, key, value, timeout=None):
        raise ConnectionError("redis down")

    def delete(self, key):
        raise ConnectionError("redis down")


def number(key: str, value: str) -> PricingSetting:
    return PricingSetting.objects.create(key=key, value=value, data_type=PricingSetting.DataType.NUMBER)


class RateRuleProviderTests(TestCase):

    def setUp(self) -> None:
        cache.clear()

    def test_defaults_without_stored_settings(self) -> None:
        self.assertEqual(rate_provider.current_rates(), DEFAULT_RULES)

    def test_stored_settings_override_defaults(self) -> None:
        number(SERVICE_FEE_RATE, "0.12")
        number(MINIMUM_STAY, "2")
        PricingSetting.objects.create(key=CURRENCY, value="eur")

        rules = rate_provider.current_rates()

        self.assertEqual(rules.service_fee_rate, Decimal("0.12"))
        self.assertEqual(rules.tax_rate, Decimal("0.15"))
        self.assertEqual(rules.currency, "EUR")
        self.assertEqual(rules.default_minimum_stay, 2)

    def test_snapshot_is_cached(self) -> None:
        number(TAX_RATE, "0.14")
        rate_provider.current_rates()

        with self.assertNumQueries(0):
            rules = rate_provider.current_rates()

        self.assertEqual(rules.tax_rate, Decimal("0.14"))

    def test_changing_a_setting_invalidates_the_cache(self) -> None:
        setting = number(TAX_RATE, "0.14")
        self.assertEqual(rate_provider.current_rates().tax_rate, Decimal("0.14"))

        setting.value = "0.20"
        setting.save()
        self.assertEqual(rate_provider.current_rates().tax_rate, Decimal("0.20"))

        setting.delete()
        self.assertEqual(rate_provider.current_rates().tax_rate, Decimal("0.15"))

    def test_falls_back_to_last_known_good(self) -> None:
        answers = [{SERVICE_FEE_RATE: "0.20"}]

        def loader():
            if answers:
                return answers.pop()
            raise DatabaseError("connection refused")

        provider = RateRuleProvider(loader=loader)
        self.assertEqual(provider.refresh().service_fee_rate, Decimal("0.20"))
        provider.invalidate()

        with self.assertLogs("apps.finances.rates", "WARNING") as logs:
            rules = provider.current_rates()

        self.assertEqual(rules.service_fee_rate, Decimal("0.20"))
        self.assertIn("last-known-good", logs.output[0])

    def test_falls_back_to_defaults(self) -> None:
        def loader():
            raise DatabaseError("connection refused")

        with self.assertLogs("apps.finances.rates", "WARNING") as logs:
            rules = RateRuleProvider(loader=loader).current_rates()

        self.assertEqual(rules, DEFAULT_RULES)
        self.assertIn("default rates", logs.output[0])

    def test_cache_outage_loads_from_database(self) -> None:
        number(TAX_RATE, "0.14")

        with self.assertLogs("apps.finances.rates", "WARNING") as logs:
            provider = RateRuleProvider(cache=BrokenCache())
            rules = provider.current_rates()
            provider.invalidate()

        self.assertEqual(rules.tax_rate, Decimal("0.14"))
        self.assertIn("redis down", logs.output[0])

    def test_cache_outage_with_unreadable_store_uses_defaults(self) -> None:
        def loader():
            raise DatabaseError("connection refused")

        with self.assertLogs("apps.finances.rates", "WARNING") as logs:
            rules = RateRuleProvider(loader=loader, cache=BrokenCache()).current_rates()

        self.assertEqual(rules, DEFAULT_RULES)
        self.assertIn("default rates", logs.output[-1])

    def test_unparsable_stored_value_is_not_fatal(self) -> None:
        number(TAX_RATE, "fourteen percent")

        with self.assertLogs("apps.finances.rates", "WARNING"):
            rules = rate_provider.current_rates()

        self.assertEqual(rules, DEFAULT_RULES)

    def test_refresh_task_rewarms_cache(self) -> None:
        number(ROUNDING_QUANTUM, "1")

        result = refresh_rate_rules()

        self.assertEqual(result["rounding_quantum"], "1")
        self.assertEqual(result["currency"], "USD")
        with self.assertNumQueries(0):
            self.assertEqual(rate_provider.current_rates().rounding_quantum, Decimal("1"))


class BuildRateRulesTests(TestCase):

    def test_rejects_out_of_range_values(self) -> None:
        invalid = (
            {TAX_RATE: "1.5"},
            {SERVICE_FEE_RATE: "-0.1"},
            {ROUNDING_QUANTUM: "0"},
            {MINIMUM_STAY: "1.5"},
            {CURRENCY: "DOLLARS"},
            {TAX_RATE: "n/a"},
        )
        for values in invalid:
            with self.subTest(values=values):
                with self.assertRaises(RateConfigUnavailable):
                    build_rate_rules(values)


class PricingSettingTests(TestCase):

    def test_parsed_value(self) -> None:
        self.assertEqual(PricingSetting(key="x", value=" 0.5 ", data_type="number").parsed_value(), Decimal("0.5"))
        self.assertIs(PricingSetting(key="x", value="yes", data_type="boolean").parsed_value(), True)
        self.assertEqual(PricingSetting(key="x", value='{"a": 1}', data_type="json").parsed_value(), {"a": 1})
        with self.assertRaises(ValueError):
            PricingSetting(key="x", value="maybe", data_type="boolean").parsed_value()

    def test_clean_validates_rate_keys(self) -> None:
        with self.assertRaises(ValidationError):
            PricingSetting(key=TAX_RATE, value="2", data_type="number").clean()
        with self.assertRaises(ValidationError):
            PricingSetting(key=CURRENCY, value="US", data_type="string").clean()
        PricingSetting(key=SERVICE_FEE_RATE, value="0.12", data_type="number").clean()
