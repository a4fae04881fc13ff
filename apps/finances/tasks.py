"""Celery tasks for rate-rule maintenance."""

from __future__ import annotations

import logging

from celery import shared_task

from .rates import rate_provider

logger = logging.getLogger(__name__)


@shared_task(name="finances.refresh_rate_rules")
def refresh_rate_rules() -> dict:
    """Re-warm the rate rules cache so request handlers rarely hit the database."""
    rules = rate_provider.refresh()
    logger.info(f"Rate rules cache warmed ({rules.currency}, fee {rules.service_fee_rate}, tax {rules.tax_rate})")
    return {
        "service_fee_rate": str(rules.service_fee_rate),
        "tax_rate": str(rules.tax_rate),
        "currency": rules.currency,
        "minimum_stay": rules.default_minimum_stay,
        "rounding_quantum": str(rules.rounding_quantum),
    }
