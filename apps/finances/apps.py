from django.apps import AppConfig  # type: ignore


class FinancesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.finances"
    label = "finances"

    def ready(self) -> None:
        from . import signals  # noqa: F401
