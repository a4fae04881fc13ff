"""Admin registrations for the catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import AddOn, Resource


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "kind",
        "base_price",
        "max_occupancy",
        "min_participants",
        "minimum_stay",
        "cleaning_fee",
        "is_active",
    )
    list_filter = ("kind", "is_active")
    search_fields = ("name", "slug")
    readonly_fields = ("slug", "created_at", "updated_at")


@admin.register(AddOn)
class AddOnAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)
