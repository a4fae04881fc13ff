import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("booking_engine")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Re-warm cached rate rules on the same interval as their cache TTL
    "refresh-rate-rules": {
        "task": "finances.refresh_rate_rules",
        "schedule": float(os.environ.get("RATE_CACHE_TTL", 300)),
        "options": {"expires": 60},
    },
}
