"""
Booking Errors

Every failure the engine reports is one of these types. Each carries a
stable ``code`` and the HTTP status the API layer answers with.

- InvalidRequest (400): malformed dates, counts or selections; never retried
- OccupancyExceeded / MinimumStayNotMet (422): the client must change inputs
- DateRangeConflict (409): the dates are taken; retry with other dates
- PersistenceFailure (503): storage kept failing after bounded retries
- RateConfigUnavailable: recovered internally with fallback rates
"""

from __future__ import annotations

from typing import Any, Iterable
from uuid import UUID


class BookingError(Exception):
    """Base class for typed booking engine errors"""

    code = "booking_error"
    http_status = 400

    def __init__(self, detail: str = "", **context: Any):
        super().__init__(detail or self.code)
        self.detail = detail or self.code
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "detail": self.detail}
        body.update(self.context)
        return body


class InvalidRequest(BookingError):
    code = "invalid_request"
    http_status = 400


class InvalidDateRange(InvalidRequest):
    """checkOut <= checkIn (or an empty calendar window)"""

    code = "invalid_date_range"


class ResourceNotFound(InvalidRequest):
    code = "resource_not_found"
    http_status = 404


class OccupancyExceeded(BookingError):
    code = "occupancy_exceeded"
    http_status = 422


class MinimumStayNotMet(BookingError):
    code = "minimum_stay_not_met"
    http_status = 422


class DateRangeConflict(BookingError):
    """The requested interval overlaps an active booking or a block"""

    code = "date_range_conflict"
    http_status = 409

    def __init__(self, detail: str = "", conflicts: Iterable[UUID] = (), **context: Any):
        self.conflicts = tuple(conflicts)
        super().__init__(detail, conflicts=[str(booking_id) for booking_id in self.conflicts], **context)


class BookingNotFound(BookingError):
    code = "booking_not_found"
    http_status = 404


class InvalidStateTransition(BookingError):
    code = "invalid_state_transition"
    http_status = 409


class PersistenceFailure(BookingError):
    code = "persistence_failure"
    http_status = 503


class RateConfigUnavailable(BookingError):
    code = "rate_config_unavailable"
    http_status = 503
