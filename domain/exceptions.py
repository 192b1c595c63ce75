"""Domain Exceptions

Every rejection raised by the booking core derives from BookingError and
carries a machine readable code plus structured details, so the caller can
offer a remedial action (switch to private-all, pick another room, ...).
"""
from datetime import date
from typing import Any, Dict, Optional


class BookingError(Exception):
    """Base class for booking core errors"""

    code = "booking_error"
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.retryable:
            payload["retryable"] = True
        return {"error": payload}


class InvalidInput(BookingError, ValueError):
    """Malformed or missing fields, bad date format or ordering"""

    code = "invalid_input"


class InvalidDateRange(InvalidInput):
    code = "invalid_date_range"


class PrivateEventOnly(BookingError):
    """A night of the stay is reserved for whole-property bookings"""

    code = "private_event_only"

    def __init__(self, event_date: date, event_name: str, event_price):
        super().__init__(
            "This date is reserved for private events. Only full property bookings "
            f"are available for {event_name}.",
            {
                "date": event_date.isoformat(),
                "private_event": True,
                "event_info": {
                    "name": event_name,
                    "price": str(event_price),
                    "mode": "private_only",
                },
            },
        )
        self.event_date = event_date
        self.event_name = event_name


class RoomUnavailable(BookingError):
    code = "room_unavailable"

    def __init__(self, room_id: int, day: date):
        super().__init__(
            f"Room {room_id} is not available on {day.isoformat()}.",
            {"room_id": room_id, "date": day.isoformat()},
        )
        self.room_id = room_id
        self.date = day


class InsufficientCapacity(BookingError):
    code = "insufficient_capacity"

    def __init__(self, day: date, available: int, requested: int):
        super().__init__(
            f"Only {available} rooms are available on {day.isoformat()}, "
            f"but {requested} rooms were requested.",
            {"date": day.isoformat(), "available": available, "requested": requested},
        )
        self.date = day
        self.available = available
        self.requested = requested


class InvalidTotal(BookingError):
    """Computed price is zero or negative; a configuration or logic defect"""

    code = "invalid_total"

    def __init__(self, total):
        super().__init__("Order total must be greater than 0", {"total": str(total)})
        self.total = total


class InvalidStatusTransition(BookingError):
    code = "invalid_status_transition"

    def __init__(self, reservation_id: Optional[int], current: str, target: str):
        super().__init__(
            f"Cannot move reservation from {current} to {target}",
            {"reservation_id": reservation_id, "status": current, "target": target},
        )


class PersistenceError(BookingError):
    """Storage failure during commit; safe to retry the whole operation"""

    code = "persistence_error"
    retryable = True


class ReservationNotFound(BookingError):
    code = "reservation_not_found"

    def __init__(self, reservation_id: int):
        super().__init__(
            f"Reservation {reservation_id} not found",
            {"reservation_id": reservation_id},
        )
        self.reservation_id = reservation_id


class PrivateEventNotFound(BookingError):
    code = "private_event_not_found"

    def __init__(self, day: date):
        super().__init__(
            f"No private event found for {day.isoformat()}",
            {"date": day.isoformat()},
        )
