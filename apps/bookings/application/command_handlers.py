"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

- ReservationCoordinator: create a booking (and preview its price)
- ConfirmBookingCommand: payment confirmed
- CancelBookingCommand: cancel a booking and free its dates
- CompleteBookingCommand: stay or activity finished
- BlockDatesCommand / UnblockDatesCommand: manual availability blocks
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, List, Tuple
from uuid import UUID, uuid4
import logging

from django.db import DatabaseError  # type: ignore

from apps.bookings.domain.entities import (
    ActivityBookingRequest,
    AttemptState,
    Booking,
    BookingRequest,
    PropertyBookingRequest,
    SelectionRequest,
    generate_booking_code,
)
from apps.bookings.domain.errors import (
    BookingNotFound,
    DateRangeConflict,
    InvalidRequest,
    MinimumStayNotMet,
    OccupancyExceeded,
    PersistenceFailure,
    ResourceNotFound,
)
from apps.bookings.domain.events import BookingCreated
from apps.bookings.domain.inventory import Availability, booking_interval
from apps.bookings.domain.pricing import (
    ActivitySelection,
    AddOnSelection,
    PriceBreakdown,
    PricingCalculator,
    RateRules,
)
from apps.catalog.domain import ResourceKind, ResourceSnapshot
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)

# Largest values the booking columns hold (smallint counts, 12,2 money)
MAX_QUANTITY = 32767
MAX_AMOUNT = Decimal("9999999999.99")


@dataclass(frozen=True)
class Quote:
    """A validated, priced booking request that has not been reserved"""
    resource: ResourceSnapshot
    dates: DateRange
    guest_count: int
    add_ons: Tuple[AddOnSelection, ...]
    activities: Tuple[ActivitySelection, ...]
    price: PriceBreakdown
    availability: Availability | None = None


class ReservationCoordinator:
    """
    Handler for booking creation

    Per attempt:
    1. Take one rate-rule snapshot (used for the whole attempt)
    2. Validate shape, resolve the resource and selections
    3. Capacity, then minimum stay
    4. Non-authoritative availability pre-check
    5. Price
    6. Commit: reserve + insert inside one unit of work. The reservation
       itself re-validates atomically, so of two racing attempts for
       overlapping dates at most one commits; the other gets
       DateRangeConflict. Storage errors retry only this step.
    """

    def __init__(
        self,
        catalog,
        availability,
        bookings,
        rates,
        pricing: PricingCalculator | None = None,
        uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
        max_attempts: int = 3,
    ):
        self.catalog = catalog
        self.availability = availability
        self.bookings = bookings
        self.rates = rates
        self.pricing = pricing or PricingCalculator()
        self.uow_factory = uow_factory
        self.max_attempts = max(1, max_attempts)

    def quote(self, request: BookingRequest) -> Quote:
        """Price preview; goes through the same checks but never reserves"""
        rates = self.rates.current_rates()
        quote = self._prepare(request, rates)
        availability = self.availability.is_available(quote.resource.id, quote.dates)
        return Quote(
            resource=quote.resource,
            dates=quote.dates,
            guest_count=quote.guest_count,
            add_ons=quote.add_ons,
            activities=quote.activities,
            price=quote.price,
            availability=availability,
        )

    def create_booking(self, request: BookingRequest) -> Booking:
        """
        Create a PENDING booking

        Raises:
            InvalidRequest, ResourceNotFound, InvalidDateRange: malformed request
            OccupancyExceeded, MinimumStayNotMet: business rule not met
            DateRangeConflict: the dates are taken
            PersistenceFailure: storage kept failing after bounded retries
        """
        self._log_state(AttemptState.REQUESTED, request)
        rates = self.rates.current_rates()

        try:
            quote = self._prepare(request, rates)
        except OccupancyExceeded:
            self._log_state(AttemptState.REJECTED_CAPACITY, request)
            raise
        except (InvalidRequest, MinimumStayNotMet):
            self._log_state(AttemptState.REJECTED_INVALID, request)
            raise
        self._log_state(AttemptState.VALIDATED, request)

        availability = self.availability.is_available(quote.resource.id, quote.dates)
        if not availability.free:
            self._log_state(AttemptState.REJECTED_CONFLICT, request)
            raise DateRangeConflict(
                f"Dates {quote.dates} are not available for resource {quote.resource.id}",
                conflicts=availability.conflicts,
                blocked_reasons=list(availability.blocked_reasons),
            )
        self._log_state(AttemptState.AVAILABILITY_CHECKED, request)

        booking = Booking(
            id=uuid4(),
            booking_code=generate_booking_code(),
            resource_id=quote.resource.id,
            kind=quote.resource.kind,
            dates=quote.dates,
            guest_count=quote.guest_count,
            price=quote.price,
            add_ons=quote.add_ons,
            activities=quote.activities,
            contact=request.contact,
        )

        try:
            self._commit(booking)
        except DateRangeConflict:
            self._log_state(AttemptState.REJECTED_CONFLICT, request)
            raise

        self._log_state(AttemptState.COMMITTED, request)
        logger.info(
            f"Booking created successfully: {booking.booking_code} "
            f"(ID: {booking.id}), total {booking.price.total}"
        )
        return booking

    def _commit(self, booking: Booking):
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                booking.booking_code = generate_booking_code()
            try:
                with self.uow_factory() as uow:
                    self.availability.reserve(booking.resource_id, booking.dates, booking.id)
                    uow.add_compensation(
                        lambda: self.availability.release(booking.resource_id, booking.id)
                    )
                    self.bookings.add(booking)
                    booking.add_event(BookingCreated.for_booking(
                        booking.id, booking.booking_code, booking.resource_id,
                        booking.dates, booking.price,
                    ))
                    uow.collect_events(booking)
                return
            except DateRangeConflict as e:
                logger.info(
                    f"Commit lost the race for {booking.dates} on resource "
                    f"{booking.resource_id}: {list(e.conflicts)}"
                )
                raise
            except DatabaseError as e:
                booking.clear_events()
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Booking commit failed after {attempt} attempt(s): {e}",
                        exc_info=True,
                    )
                    raise PersistenceFailure(
                        "Could not store the booking, please try again later",
                        attempts=attempt,
                    ) from e
                logger.warning(f"Booking commit attempt {attempt} failed, retrying: {e}")

    def _prepare(self, request: BookingRequest, rates: RateRules) -> Quote:
        kind = getattr(request, 'kind', None)
        if kind not in (ResourceKind.PROPERTY, ResourceKind.ACTIVITY):
            raise InvalidRequest(f"Unsupported booking kind: {kind!r}")

        resource = self.catalog.get_resource(request.resource_id)
        if resource is None or not resource.is_active:
            raise ResourceNotFound(
                f"Resource {request.resource_id} not found or not active",
                resource=str(request.resource_id),
            )
        if resource.kind is not kind:
            raise InvalidRequest(
                f"A {kind.value} booking cannot be made for a {resource.kind.value} resource",
                kind=kind.value,
            )

        if kind is ResourceKind.PROPERTY:
            quote = self._prepare_stay(request, resource, rates)
        else:
            quote = self._prepare_activity(request, resource, rates)

        if quote.price.total.amount > MAX_AMOUNT:
            raise InvalidRequest(
                f"Total {quote.price.total} exceeds the largest amount a booking can hold",
                field="total",
            )
        return quote

    def _prepare_stay(self, request: PropertyBookingRequest, resource: ResourceSnapshot,
                      rates: RateRules) -> Quote:
        dates = booking_interval(request.check_in, request.check_out)
        if len(dates) > MAX_QUANTITY:
            raise InvalidRequest(f"A stay can last at most {MAX_QUANTITY} nights", field="check_out")
        guests = self._positive(request.guests, 'guests')
        add_ons = self._resolve_add_ons(request.add_ons)
        activities = self._resolve_activities(request.activities)

        self._check_capacity(resource, guests)
        # price_stay enforces the minimum stay
        price = self.pricing.price_stay(resource, len(dates), rates, add_ons, activities)
        return Quote(resource, dates, guests, add_ons, activities, price)

    def _prepare_activity(self, request: ActivityBookingRequest, resource: ResourceSnapshot,
                          rates: RateRules) -> Quote:
        if not isinstance(request.date, date):
            raise InvalidRequest("Activity date is required")
        dates = DateRange.starting(request.date, resource.duration_days)
        participants = self._positive(request.participants, 'participants')
        add_ons = self._resolve_add_ons(request.add_ons)

        self._check_capacity(resource, participants)
        price = self.pricing.price_activity(resource, participants, rates, add_ons)
        line = ActivitySelection(resource.id, resource.base_price, participants)
        return Quote(resource, dates, participants, add_ons, (line,), price)

    def _resolve_add_ons(self, selections: Iterable[SelectionRequest]) -> Tuple[AddOnSelection, ...]:
        resolved: List[AddOnSelection] = []
        for selection in self._unique(selections, 'add-on'):
            item = self.catalog.get_add_on(selection.item_id)
            if item is None or not item.is_active:
                raise InvalidRequest(
                    f"Add-on {selection.item_id} not found or not active",
                    item=str(selection.item_id),
                )
            quantity = self._positive(selection.quantity, 'add-on quantity')
            resolved.append(AddOnSelection(item.id, item.unit_price, quantity))
        return tuple(resolved)

    def _resolve_activities(self, selections: Iterable[SelectionRequest]) -> Tuple[ActivitySelection, ...]:
        resolved: List[ActivitySelection] = []
        for selection in self._unique(selections, 'activity'):
            activity = self.catalog.get_activity(selection.item_id)
            if activity is None or not activity.is_active:
                raise InvalidRequest(
                    f"Activity {selection.item_id} not found or not active",
                    item=str(selection.item_id),
                )
            participants = self._positive(selection.quantity, 'activity participants')
            self._check_capacity(activity, participants)
            resolved.append(ActivitySelection(activity.id, activity.base_price, participants))
        return tuple(resolved)

    @staticmethod
    def _unique(selections: Iterable[SelectionRequest], label: str) -> List[SelectionRequest]:
        selections = list(selections or ())
        seen = set()
        for selection in selections:
            if selection.item_id in seen:
                raise InvalidRequest(f"Duplicate {label} selection {selection.item_id}")
            seen.add(selection.item_id)
        return selections

    @staticmethod
    def _positive(value, label: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidRequest(f"{label.capitalize()} must be a positive integer", field=label)
        if value > MAX_QUANTITY:
            raise InvalidRequest(f"{label.capitalize()} must be at most {MAX_QUANTITY}", field=label)
        return value

    @staticmethod
    def _check_capacity(resource: ResourceSnapshot, count: int):
        if count > resource.max_occupancy:
            raise OccupancyExceeded(
                f"{count} exceeds the capacity of {resource.name} ({resource.max_occupancy})",
                max_occupancy=resource.max_occupancy,
                requested=count,
            )
        if resource.kind is ResourceKind.ACTIVITY and count < resource.min_participants:
            raise OccupancyExceeded(
                f"{resource.name} needs at least {resource.min_participants} participants, got {count}",
                min_participants=resource.min_participants,
                max_occupancy=resource.max_occupancy,
                requested=count,
            )

    @staticmethod
    def _log_state(state: AttemptState, request: BookingRequest):
        level = logging.INFO if state in (AttemptState.REQUESTED, AttemptState.COMMITTED) else logging.DEBUG
        if state.name.startswith('REJECTED'):
            level = logging.WARNING
        kind = getattr(request, "kind", None)
        logger.log(
            level,
            f"Booking attempt {state.value}: {getattr(kind, 'value', kind)} "
            f"resource {getattr(request, 'resource_id', None)}",
        )


# ===== Lifecycle commands =====

@dataclass(frozen=True)
class ConfirmBookingCommand:
    """Payment confirmed by the payment collaborator"""
    booking_id: UUID
    payment_reference: str = ''


@dataclass(frozen=True)
class CancelBookingCommand:
    booking_id: UUID
    reason: str = ''


@dataclass(frozen=True)
class CompleteBookingCommand:
    booking_id: UUID


@dataclass(frozen=True)
class BlockDatesCommand:
    """Take dates out of sale (maintenance, owner use)"""
    resource_id: UUID
    start_date: date
    end_date: date
    reason: str = ''


@dataclass(frozen=True)
class UnblockDatesCommand:
    resource_id: UUID
    start_date: date
    end_date: date


class _BookingHandler:

    def __init__(self, bookings, availability=None,
                 uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork):
        self.bookings = bookings
        self.availability = availability
        self.uow_factory = uow_factory

    def _load(self, booking_id: UUID) -> Booking:
        booking = self.bookings.get(booking_id, lock=True)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found", booking=str(booking_id))
        return booking


class ConfirmBookingHandler(_BookingHandler):
    """PENDING -> CONFIRMED; the dates stay occupied"""

    def handle(self, command: ConfirmBookingCommand) -> Booking:
        logger.info(f"Confirming booking {command.booking_id}")

        with self.uow_factory() as uow:
            booking = self._load(command.booking_id)
            booking.confirm(command.payment_reference)
            self.bookings.save(booking)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} confirmed successfully")
        return booking


class CancelBookingHandler(_BookingHandler):
    """Cancel and release the dates in the same transaction"""

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with self.uow_factory() as uow:
            booking = self._load(command.booking_id)
            booking.cancel(command.reason)
            released = self.availability.release(booking.resource_id, booking.id)
            self.bookings.save(booking)
            uow.collect_events(booking)

        logger.info(
            f"Booking {booking.booking_code} cancelled successfully"
            f"{'' if released else ' (no dates were held)'}"
        )
        return booking


class CompleteBookingHandler(_BookingHandler):

    def handle(self, command: CompleteBookingCommand) -> Booking:
        logger.info(f"Completing booking {command.booking_id}")

        with self.uow_factory() as uow:
            booking = self._load(command.booking_id)
            booking.complete()
            self.availability.release(booking.resource_id, booking.id)
            self.bookings.save(booking)
            uow.collect_events(booking)

        logger.info(f"Booking {booking.booking_code} completed successfully")
        return booking


class BlockDatesHandler:

    def __init__(self, catalog, availability,
                 uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork):
        self.catalog = catalog
        self.availability = availability
        self.uow_factory = uow_factory

    def _interval(self, resource_id: UUID, start: date, end: date) -> DateRange:
        if self.catalog.get_resource(resource_id) is None:
            raise ResourceNotFound(f"Resource {resource_id} not found", resource=str(resource_id))
        return booking_interval(start, end)

    def handle(self, command: BlockDatesCommand) -> DateRange:
        dates = self._interval(command.resource_id, command.start_date, command.end_date)
        with self.uow_factory():
            self.availability.block(command.resource_id, dates, command.reason)
        return dates

    def handle_unblock(self, command: UnblockDatesCommand) -> int:
        dates = self._interval(command.resource_id, command.start_date, command.end_date)
        with self.uow_factory():
            return self.availability.unblock(command.resource_id, dates)
