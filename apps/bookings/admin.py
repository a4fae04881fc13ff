"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Booking, BookingSelection, ReservedNight


class BookingSelectionInline(admin.TabularInline):
    model = BookingSelection
    extra = 0
    readonly_fields = ("kind", "item_id", "unit_price", "quantity")
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Read-mostly: status changes go through the booking API so dates are released."""

    list_display = (
        "booking_code",
        "resource",
        "kind",
        "status",
        "check_in",
        "check_out",
        "guest_count",
        "total",
        "currency",
        "created_at",
    )
    list_filter = ("status", "kind", "check_in")
    search_fields = ("booking_code", "resource__name", "contact_email", "contact_name")
    inlines = [BookingSelectionInline]
    readonly_fields = (
        "booking_code",
        "resource",
        "kind",
        "check_in",
        "check_out",
        "guest_count",
        "status",
        "nights",
        "unit_price",
        "subtotal",
        "add_ons_total",
        "activities_total",
        "cleaning_fee",
        "service_fee",
        "tax",
        "total",
        "currency",
        "service_fee_rate",
        "tax_rate",
        "security_deposit",
        "payment_reference",
        "cancellation_reason",
        "confirmed_at",
        "cancelled_at",
        "completed_at",
        "created_at",
        "updated_at",
    )


@admin.register(ReservedNight)
class ReservedNightAdmin(admin.ModelAdmin):
    list_display = ("resource", "night", "source", "booking", "reason")
    list_filter = ("source", "night")
    search_fields = ("resource__name", "booking__booking_code", "reason")
    readonly_fields = ("resource", "night", "source", "booking", "reason", "created_at")
