"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    FAILED = "failed"


class OverrideStatus(str, Enum):
    BLOCKED = "blocked"
    BOOKED = "booked"
    PENDING = "pending"
    EXTERNAL = "external"


class PrivateEventMode(str, Enum):
    PRIVATE_ONLY = "private_only"
    SPECIAL_PRICING = "special_pricing"


# Reservations in these states consume capacity
ACTIVE_RESERVATION_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.PAID})

# Override states that take a room out of the pool for a day
OCCUPYING_OVERRIDE_STATUSES = frozenset({
    OverrideStatus.BLOCKED,
    OverrideStatus.BOOKED,
    OverrideStatus.PENDING,
    OverrideStatus.EXTERNAL,
})

# Admin "set status" form also accepts "free", which clears the override
FREE_STATUS = "free"
