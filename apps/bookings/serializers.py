"""Serializers for the booking domain."""

from __future__ import annotations

from typing import Any, Mapping

from rest_framework import serializers  # type: ignore

from apps.catalog.domain import ResourceKind

from .application.command_handlers import MAX_QUANTITY
from .domain.entities import (
    ActivityBookingRequest,
    BookingRequest,
    ContactDetails,
    PropertyBookingRequest,
    SelectionRequest,
)
from .domain.errors import InvalidRequest
from .models import Booking, BookingSelection


class SelectionSerializer(serializers.Serializer):
    item = serializers.UUIDField()
    quantity = serializers.IntegerField(
        min_value=1,
        max_value=MAX_QUANTITY,
        help_text="Quantity for add-ons, participants for activities.",
    )


class ContactSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class _BookingRequestSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=[k.value for k in ResourceKind])
    resource = serializers.UUIDField()
    add_ons = SelectionSerializer(many=True, required=False, default=list)
    contact = ContactSerializer(required=False)

    @staticmethod
    def _selections(items) -> tuple[SelectionRequest, ...]:
        return tuple(SelectionRequest(item_id=i["item"], quantity=i["quantity"]) for i in items or ())

    @staticmethod
    def _contact(data) -> ContactDetails:
        return ContactDetails(**data) if data else ContactDetails()


class PropertyBookingRequestSerializer(_BookingRequestSerializer):
    """Stay at a property: half-open [check_in, check_out)."""

    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    activities = SelectionSerializer(many=True, required=False, default=list)

    def to_request(self) -> PropertyBookingRequest:
        data = self.validated_data
        return PropertyBookingRequest(
            resource_id=data["resource"],
            check_in=data["check_in"],
            check_out=data["check_out"],
            guests=data["guests"],
            add_ons=self._selections(data.get("add_ons")),
            activities=self._selections(data.get("activities")),
            contact=self._contact(data.get("contact")),
        )


class ActivityBookingRequestSerializer(_BookingRequestSerializer):
    """Activity on a single date."""

    date = serializers.DateField()
    participants = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)

    def to_request(self) -> ActivityBookingRequest:
        data = self.validated_data
        return ActivityBookingRequest(
            resource_id=data["resource"],
            date=data["date"],
            participants=data["participants"],
            add_ons=self._selections(data.get("add_ons")),
            contact=self._contact(data.get("contact")),
        )


REQUEST_SERIALIZERS = {
    ResourceKind.PROPERTY.value: PropertyBookingRequestSerializer,
    ResourceKind.ACTIVITY.value: ActivityBookingRequestSerializer,
}


def parse_booking_request(data: Mapping[str, Any]) -> BookingRequest:
    """Dispatch on the ``kind`` discriminant; a missing kind means a property stay."""
    payload = data.copy() if hasattr(data, "copy") else dict(data)
    payload.setdefault("kind", ResourceKind.PROPERTY.value)
    serializer_class = REQUEST_SERIALIZERS.get(payload["kind"])
    if serializer_class is None:
        raise InvalidRequest(f"Unknown booking kind {payload['kind']!r}", kind=str(payload["kind"]))
    serializer = serializer_class(data=payload)
    if not serializer.is_valid():
        raise InvalidRequest("Invalid booking request", fields=serializer.errors)
    return serializer.to_request()


class CalendarQuerySerializer(serializers.Serializer):
    """``?resource=&from=&to=`` (``from`` is a keyword, hence get_fields)."""

    def get_fields(self):  # type: ignore
        return {
            "resource": serializers.UUIDField(),
            "from": serializers.DateField(),
            "to": serializers.DateField(),
        }


class BlockSerializer(serializers.Serializer):
    resource = serializers.UUIDField()
    start_date = serializers.DateField()
    end_date = serializers.DateField(help_text="Exclusive.")
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ConfirmSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(required=False, allow_blank=True, default="")


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class BookingSelectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingSelection
        fields = ["kind", "item_id", "unit_price", "quantity"]


class BookingSerializer(serializers.ModelSerializer):
    """Read representation of a committed booking."""

    resource_id = serializers.ReadOnlyField()
    selections = BookingSelectionSerializer(many=True, read_only=True)
    price_breakdown = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "resource_id",
            "kind",
            "check_in",
            "check_out",
            "guest_count",
            "status",
            "contact_name",
            "contact_email",
            "contact_phone",
            "notes",
            "selections",
            "price_breakdown",
            "payment_reference",
            "cancellation_reason",
            "confirmed_at",
            "cancelled_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_price_breakdown(self, obj: Booking) -> dict:
        amounts = (
            "unit_price", "subtotal", "add_ons_total", "activities_total",
            "cleaning_fee", "service_fee", "tax", "total",
        )
        data = {name: str(getattr(obj, name)) for name in amounts}
        data.update(
            nights=obj.nights,
            currency=obj.currency,
            service_fee_rate=str(obj.service_fee_rate),
            tax_rate=str(obj.tax_rate),
            security_deposit=str(obj.security_deposit) if obj.security_deposit is not None else None,
        )
        return data
