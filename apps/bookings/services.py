"""Wiring of the booking engine to its Django collaborators."""

from __future__ import annotations

import logging

from apps.catalog.services import DjangoCatalog
from apps.finances.rates import rate_provider
from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.infrastructure.config import engine_setting

from .application.command_handlers import (
    BlockDatesCommand,
    BlockDatesHandler,
    CancelBookingCommand,
    CancelBookingHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
    ReservationCoordinator,
    UnblockDatesCommand,
)
from .application.queries import AvailabilityCalendar
from .handlers import AUDITED_EVENTS, audit_booking_event
from .infrastructure.availability import DjangoAvailabilityIndex
from .infrastructure.repositories import DjangoBookingRepository

logger = logging.getLogger(__name__)


def build_coordinator() -> ReservationCoordinator:
    return ReservationCoordinator(
        catalog=DjangoCatalog(),
        availability=DjangoAvailabilityIndex(),
        bookings=DjangoBookingRepository(),
        rates=rate_provider,
        uow_factory=DjangoUnitOfWork,
        max_attempts=engine_setting("COMMIT_MAX_ATTEMPTS"),
    )


def build_calendar() -> AvailabilityCalendar:
    return AvailabilityCalendar(
        catalog=DjangoCatalog(),
        availability=DjangoAvailabilityIndex(),
        max_days=engine_setting("CALENDAR_MAX_DAYS"),
    )


def bootstrap(bus: MessageBus) -> None:
    """Register booking command and event handlers; safe to call twice."""
    if bus.has_command_handler(ConfirmBookingCommand):
        return

    bookings = DjangoBookingRepository()
    availability = DjangoAvailabilityIndex()
    blocks = BlockDatesHandler(DjangoCatalog(), availability)

    bus.register_command_handler(ConfirmBookingCommand, ConfirmBookingHandler(bookings).handle)
    bus.register_command_handler(CancelBookingCommand, CancelBookingHandler(bookings, availability).handle)
    bus.register_command_handler(CompleteBookingCommand, CompleteBookingHandler(bookings, availability).handle)
    bus.register_command_handler(BlockDatesCommand, blocks.handle)
    bus.register_command_handler(UnblockDatesCommand, blocks.handle_unblock)

    for event_type in AUDITED_EVENTS:
        bus.register_event_handler(event_type, audit_booking_event)

    logger.debug("Booking handlers registered on the message bus")
