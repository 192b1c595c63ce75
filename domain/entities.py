"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal

from domain.enums import ReservationStatus, ACTIVE_RESERVATION_STATUSES
from domain.exceptions import InvalidInput, InvalidStatusTransition
from domain.value_objects import DateRange, GuestDetails, iter_days


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity, assigned by the ledger on insert
    reservation_id: Optional[int] = None

    # Stay
    check_in: date
    check_out: date

    # Room selection
    rooms_qty: int = Field(ge=0)
    room_ids: List[int] = []
    private_all: bool = False

    # Money
    total_amount: Decimal = Field(ge=0)
    deposit_amount: Decimal = Field(ge=0)
    currency: str

    guest: GuestDetails = Field(default_factory=GuestDetails)

    # Enums/Status
    status: ReservationStatus = ReservationStatus.PENDING
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        date_range: DateRange,
        rooms_qty: int,
        room_ids: List[int],
        private_all: bool,
        total_amount: Decimal,
        deposit_amount: Decimal,
        currency: str,
        guest: GuestDetails
    ) -> "Reservation":
        """Create new pending reservation"""
        if total_amount <= 0:
            raise InvalidInput("Amount must be greater than 0")
        if deposit_amount > total_amount:
            raise InvalidInput("Deposit cannot exceed the total amount")

        return Reservation(
            check_in=date_range.check_in,
            check_out=date_range.check_out,
            rooms_qty=rooms_qty,
            room_ids=sorted(set(room_ids)),
            private_all=private_all,
            total_amount=total_amount,
            deposit_amount=deposit_amount,
            currency=currency,
            guest=guest,
            status=ReservationStatus.PENDING
        )

    # ==================== STATE TRANSITION METHODS ====================
    def mark_paid(self, payment_method: Optional[str] = None, payment_id: Optional[str] = None) -> None:
        """Record a successful payment capture"""
        self._transition(ReservationStatus.PAID, allowed_from=[ReservationStatus.PENDING])
        self.payment_method = payment_method
        self.payment_id = payment_id

    def mark_failed(self) -> None:
        self._transition(ReservationStatus.FAILED, allowed_from=[ReservationStatus.PENDING])

    def cancel(self) -> None:
        # Operators may also cancel an order that was already paid
        self._transition(
            ReservationStatus.CANCELLED,
            allowed_from=[ReservationStatus.PENDING, ReservationStatus.PAID]
        )

    def _transition(self, target: ReservationStatus, allowed_from: List[ReservationStatus]) -> None:
        if self.status not in allowed_from:
            raise InvalidStatusTransition(self.reservation_id, self.status.value, target.value)
        self.status = target
        self.modified_at = datetime.utcnow()
        self.version += 1

    # ==================== QUERY METHODS ====================
    def is_active(self) -> bool:
        """Pending and paid reservations hold capacity"""
        return self.status in ACTIVE_RESERVATION_STATUSES

    def nights(self) -> List[date]:
        return list(iter_days(self.check_in, self.check_out))

    def overlaps(self, start: date, end: date) -> bool:
        """Check intersection with [start, end)"""
        return self.check_in < end and self.check_out > start

    def rooms_consumed(self, total_rooms: int) -> int:
        """Capacity units taken per night, counted by quantity"""
        if self.private_all:
            return total_rooms
        return self.rooms_qty

    def affects_room(self, room_id: int, assigned_rooms: List[int]) -> bool:
        """Whether this reservation occupies a given room.

        Quantity-only reservations have no concrete room, so they are shown on
        the first rooms_qty rooms.
        """
        if self.private_all:
            return True
        if assigned_rooms:
            return room_id in assigned_rooms
        return room_id <= max(1, self.rooms_qty)
