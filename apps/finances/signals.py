"""Drop cached rate rules whenever a pricing setting changes."""

from __future__ import annotations

import logging

from django.db.models.signals import post_delete, post_save  # type: ignore
from django.dispatch import receiver  # type: ignore

from .models import PricingSetting
from .rates import rate_provider

logger = logging.getLogger(__name__)


@receiver(post_save, sender=PricingSetting)
@receiver(post_delete, sender=PricingSetting)
def invalidate_rate_rules(sender, instance: PricingSetting, **kwargs) -> None:
    logger.info(f"Pricing setting {instance.key} changed, invalidating cached rate rules")
    rate_provider.invalidate()
