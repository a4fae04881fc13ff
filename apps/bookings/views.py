"""API views for the booking domain."""

from __future__ import annotations

import logging
from uuid import UUID

from django.http import Http404  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import OpenApiParameter, extend_schema  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import (
    BlockDatesCommand,
    CancelBookingCommand,
    CompleteBookingCommand,
    ConfirmBookingCommand,
    UnblockDatesCommand,
)
from .domain.errors import BookingError, BookingNotFound, InvalidRequest
from .models import Booking
from .serializers import (
    BlockSerializer,
    BookingSerializer,
    CalendarQuerySerializer,
    CancelSerializer,
    ConfirmSerializer,
    parse_booking_request,
)
from .services import build_calendar, build_coordinator

logger = logging.getLogger(__name__)


def _validated(serializer_class, data, message: str) -> dict:
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise InvalidRequest(message, fields=serializer.errors)
    return serializer.validated_data


class BookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Create, inspect and move bookings through their lifecycle."""

    queryset = Booking.objects.prefetch_related("selections").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["resource", "status", "kind"]
    lookup_value_regex = "[0-9a-fA-F-]{32,36}"

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, BookingError):
            if exc.http_status >= 500:
                logger.error(f"Booking request failed: {exc.code}: {exc.detail}")
            return Response(exc.to_dict(), status=exc.http_status)
        return super().handle_exception(exc)

    def get_object(self):  # type: ignore
        try:
            return super().get_object()
        except Http404 as exc:
            raise BookingNotFound(f"Booking {self.kwargs.get('pk')} not found") from exc

    def _respond(self, booking_id, status_code=status.HTTP_200_OK) -> Response:
        booking = self.get_queryset().get(pk=booking_id)
        return Response(self.get_serializer(booking).data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        booking_request = parse_booking_request(request.data)
        booking = build_coordinator().create_booking(booking_request)
        return self._respond(booking.id, status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        quote = build_coordinator().quote(parse_booking_request(request.data))
        return Response(
            {
                "resource_id": str(quote.resource.id),
                "check_in": quote.dates.start_date,
                "check_out": quote.dates.end_date,
                "guest_count": quote.guest_count,
                "available": quote.availability.free,
                "price_breakdown": quote.price.to_dict(),
            }
        )

    @extend_schema(
        parameters=[
            OpenApiParameter("resource", str, required=True),
            OpenApiParameter("from", str, required=True, description="First day (inclusive), YYYY-MM-DD"),
            OpenApiParameter("to", str, required=True, description="Last day (inclusive), YYYY-MM-DD"),
        ]
    )
    @action(detail=False, methods=["get"])
    def availability(self, request):  # type: ignore
        query = _validated(CalendarQuerySerializer, request.query_params, "Invalid calendar query")
        days = build_calendar().for_resource(query["resource"], query["from"], query["to"])
        return Response(
            {
                "resource_id": str(query["resource"]),
                "days": [day.to_dict() for day in days],
            }
        )

    @action(detail=False, methods=["post", "delete"])
    def blocks(self, request):  # type: ignore
        data = _validated(BlockSerializer, request.data, "Invalid block request")
        if request.method == "DELETE":
            removed = message_bus.handle_command(
                UnblockDatesCommand(data["resource"], data["start_date"], data["end_date"])
            )
            return Response({"removed": removed})

        dates = message_bus.handle_command(
            BlockDatesCommand(data["resource"], data["start_date"], data["end_date"], data["reason"])
        )
        return Response(
            {
                "resource_id": str(data["resource"]),
                "start_date": dates.start_date,
                "end_date": dates.end_date,
                "reason": data["reason"] or "blocked",
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        data = _validated(ConfirmSerializer, request.data, "Invalid confirmation")
        booking = message_bus.handle_command(ConfirmBookingCommand(self._booking_id(pk), data["payment_reference"]))
        return self._respond(booking.id)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        data = _validated(CancelSerializer, request.data, "Invalid cancellation")
        booking = message_bus.handle_command(CancelBookingCommand(self._booking_id(pk), data["reason"]))
        return self._respond(booking.id)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):  # type: ignore
        booking = message_bus.handle_command(CompleteBookingCommand(self._booking_id(pk)))
        return self._respond(booking.id)

    @staticmethod
    def _booking_id(pk):
        try:
            return UUID(str(pk))
        except ValueError as exc:
            raise InvalidRequest(f"Malformed booking id {pk!r}") from exc
