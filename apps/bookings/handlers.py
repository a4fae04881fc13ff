"""
Booking Event Handlers

Subscribed on the message bus by services.bootstrap(); they run only after
the transaction that produced the event has committed.
"""

import structlog

from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
)

audit_logger = structlog.get_logger("apps.bookings.audit")

AUDITED_EVENTS = (BookingCreated, BookingConfirmed, BookingCancelled, BookingCompleted)


def audit_booking_event(event) -> None:
    """Write one structured audit record per booking lifecycle event"""
    record = event.to_dict()
    audit_logger.info(
        "booking_event",
        event_type=record['event_type'],
        event_id=record['event_id'],
        occurred_at=record['occurred_at'],
        **record['payload'],
    )
