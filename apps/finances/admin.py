"""Admin registration for rate-rule settings."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import PricingSetting


@admin.register(PricingSetting)
class PricingSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "data_type", "category", "is_editable", "updated_at")
    list_filter = ("category", "data_type", "is_editable")
    search_fields = ("key", "description")
    readonly_fields = ("created_at", "updated_at")

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and not obj.is_editable:
            return (*self.readonly_fields, "key", "value", "data_type")
        return self.readonly_fields
