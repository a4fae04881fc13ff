"""
Booking Repositories

Map Booking aggregates to storage and back. The Django repository keeps the
frozen price breakdown in plain columns and selections in BookingSelection
rows.
"""

from abc import ABC, abstractmethod
from typing import Dict, List
from uuid import UUID
import copy
import threading

from apps.bookings.domain.entities import Booking, BookingStatus, ContactDetails
from apps.bookings.domain.pricing import ActivitySelection, AddOnSelection, PriceBreakdown
from apps.catalog.domain import ResourceKind
from shared.domain.value_objects import DateRange, Money


class AbstractBookingRepository(ABC):

    @abstractmethod
    def add(self, booking: Booking) -> None:
        """Persist a new booking with its selections"""

    @abstractmethod
    def save(self, booking: Booking) -> None:
        """Persist lifecycle changes of an existing booking"""

    @abstractmethod
    def get(self, booking_id: UUID, lock: bool = False) -> Booking | None:
        """Load a booking; lock=True holds a row lock until the transaction ends"""

    @abstractmethod
    def list(self, resource_id: UUID | None = None, status: BookingStatus | None = None) -> List[Booking]:
        """Bookings, newest first"""


class InMemoryBookingRepository(AbstractBookingRepository):
    """Stores copies so callers cannot mutate persisted state by accident"""

    def __init__(self):
        self._bookings: Dict[UUID, Booking] = {}
        self._lock = threading.Lock()

    def add(self, booking: Booking) -> None:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._bookings[booking.id] = self._detach(booking)

    def save(self, booking: Booking) -> None:
        with self._lock:
            self._bookings[booking.id] = self._detach(booking)

    def get(self, booking_id: UUID, lock: bool = False) -> Booking | None:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return copy.deepcopy(booking) if booking else None

    def list(self, resource_id: UUID | None = None, status: BookingStatus | None = None) -> List[Booking]:
        with self._lock:
            bookings = [copy.deepcopy(b) for b in self._bookings.values()]
        if resource_id is not None:
            bookings = [b for b in bookings if b.resource_id == resource_id]
        if status is not None:
            bookings = [b for b in bookings if b.status is status]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    @staticmethod
    def _detach(booking: Booking) -> Booking:
        stored = copy.deepcopy(booking)
        stored.clear_events()
        return stored


class DjangoBookingRepository(AbstractBookingRepository):

    def add(self, booking: Booking) -> None:
        from apps.bookings.models import Booking as BookingModel, BookingSelection

        model = BookingModel(id=booking.id, booking_code=booking.booking_code)
        self._apply(model, booking)
        model.save(force_insert=True)

        selections = [
            BookingSelection(
                booking=model,
                kind=BookingSelection.Kind.ADD_ON,
                item_id=line.item_id,
                unit_price=line.unit_price,
                quantity=line.quantity,
            )
            for line in booking.add_ons
        ] + [
            BookingSelection(
                booking=model,
                kind=BookingSelection.Kind.ACTIVITY,
                item_id=line.item_id,
                unit_price=line.unit_price,
                quantity=line.participants,
            )
            for line in booking.activities
        ]
        if selections:
            BookingSelection.objects.bulk_create(selections)

    def save(self, booking: Booking) -> None:
        from apps.bookings.models import Booking as BookingModel

        BookingModel.objects.filter(pk=booking.id).update(
            status=booking.status.value,
            payment_reference=booking.payment_reference,
            cancellation_reason=booking.cancellation_reason,
            confirmed_at=booking.confirmed_at,
            cancelled_at=booking.cancelled_at,
            completed_at=booking.completed_at,
            updated_at=booking.updated_at,
        )

    def get(self, booking_id: UUID, lock: bool = False) -> Booking | None:
        from apps.bookings.models import Booking as BookingModel

        queryset = BookingModel.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        model = queryset.filter(pk=booking_id).first()
        return self.to_domain(model) if model else None

    def list(self, resource_id: UUID | None = None, status: BookingStatus | None = None) -> List[Booking]:
        from apps.bookings.models import Booking as BookingModel

        queryset = BookingModel.objects.prefetch_related('selections')
        if resource_id is not None:
            queryset = queryset.filter(resource_id=resource_id)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        return [self.to_domain(model) for model in queryset]

    @staticmethod
    def _apply(model, booking: Booking):
        price = booking.price
        model.resource_id = booking.resource_id
        model.kind = booking.kind.value
        model.check_in = booking.dates.start_date
        model.check_out = booking.dates.end_date
        model.guest_count = booking.guest_count
        model.status = booking.status.value
        model.contact_name = booking.contact.name
        model.contact_email = booking.contact.email
        model.contact_phone = booking.contact.phone
        model.notes = booking.contact.notes
        model.currency = price.currency
        model.nights = price.nights
        model.unit_price = price.unit_price.amount
        model.subtotal = price.subtotal.amount
        model.add_ons_total = price.add_ons_total.amount
        model.activities_total = price.activities_total.amount
        model.cleaning_fee = price.cleaning_fee.amount
        model.service_fee = price.service_fee.amount
        model.tax = price.tax.amount
        model.total = price.total.amount
        model.service_fee_rate = price.service_fee_rate
        model.tax_rate = price.tax_rate
        model.security_deposit = price.security_deposit.amount if price.security_deposit else None
        model.payment_reference = booking.payment_reference
        model.cancellation_reason = booking.cancellation_reason
        model.confirmed_at = booking.confirmed_at
        model.cancelled_at = booking.cancelled_at
        model.completed_at = booking.completed_at
        model.created_at = booking.created_at
        model.updated_at = booking.updated_at

    @staticmethod
    def to_domain(model) -> Booking:
        currency = model.currency

        def money(amount):
            return Money(amount, currency)

        selections = list(model.selections.all())
        return Booking(
            id=model.id,
            created_at=model.created_at,
            updated_at=model.updated_at,
            booking_code=model.booking_code,
            resource_id=model.resource_id,
            kind=ResourceKind(model.kind),
            dates=DateRange(model.check_in, model.check_out),
            guest_count=model.guest_count,
            price=PriceBreakdown(
                nights=model.nights,
                unit_price=money(model.unit_price),
                subtotal=money(model.subtotal),
                add_ons_total=money(model.add_ons_total),
                activities_total=money(model.activities_total),
                cleaning_fee=money(model.cleaning_fee),
                service_fee=money(model.service_fee),
                tax=money(model.tax),
                total=money(model.total),
                service_fee_rate=model.service_fee_rate,
                tax_rate=model.tax_rate,
                security_deposit=money(model.security_deposit) if model.security_deposit is not None else None,
            ),
            add_ons=tuple(
                AddOnSelection(s.item_id, s.unit_price, s.quantity)
                for s in selections if s.kind == s.Kind.ADD_ON
            ),
            activities=tuple(
                ActivitySelection(s.item_id, s.unit_price, s.quantity)
                for s in selections if s.kind == s.Kind.ACTIVITY
            ),
            contact=ContactDetails(
                name=model.contact_name,
                email=model.contact_email,
                phone=model.contact_phone,
                notes=model.notes,
            ),
            status=BookingStatus(model.status),
            payment_reference=model.payment_reference,
            cancellation_reason=model.cancellation_reason,
            confirmed_at=model.confirmed_at,
            cancelled_at=model.cancelled_at,
            completed_at=model.completed_at,
        )
