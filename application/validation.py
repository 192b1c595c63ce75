"""Reservation request validation

Checks run in a fixed order and stop at the first failure:
input shape, private events, explicit room conflicts, capacity, price.
"""
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from application.availability import AvailabilityResolver
from application.pricing import PricingEngine
from domain.exceptions import (
    InvalidDateRange, InvalidInput, InsufficientCapacity, PrivateEventOnly, RoomUnavailable
)
from domain.settings import BookingSettings
from domain.value_objects import DateRange, GuestDetails, HoldRequest, iter_days, parse_iso_date


class StayRequest(BaseModel):
    """A request that passed the input checks, with rooms normalised"""
    date_range: DateRange
    rooms_qty: int
    room_ids: List[int] = []
    private_all: bool = False
    guest: GuestDetails = GuestDetails()

    class Config:
        frozen = True

    def rooms_requested(self, total_rooms: int) -> int:
        return total_rooms if self.private_all else self.rooms_qty


class ValidatedHold(BaseModel):
    stay: StayRequest
    total: Decimal
    deposit: Decimal

    class Config:
        frozen = True


class ReservationValidator:
    def __init__(self,
                 resolver: AvailabilityResolver,
                 pricing: PricingEngine,
                 settings: BookingSettings):
        self.resolver = resolver
        self.pricing = pricing
        self.settings = settings

    async def validate(self, request: HoldRequest, require_guest: bool = True) -> ValidatedHold:
        return await self.check(self.normalize(request, require_guest=require_guest))

    def normalize(self, request: HoldRequest, require_guest: bool = True) -> StayRequest:
        """Input checks that need no stored state"""
        guest = request.guest or GuestDetails()
        if require_guest and (not guest.name.strip() or not guest.email.strip()):
            raise InvalidInput("Name and email are required", {"fields": ["name", "email"]})

        if not self.settings.rooms_enabled:
            raise InvalidInput("Room booking is currently disabled")

        check_in = parse_iso_date(request.check_in, "check_in")
        check_out = parse_iso_date(request.check_out, "check_out")
        if check_in >= check_out:
            raise InvalidDateRange(
                "Check-out must be after check-in",
                {"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
            )

        if request.rooms_qty < 0:
            raise InvalidInput("Room quantity cannot be negative", {"rooms_qty": request.rooms_qty})

        room_ids = sorted(set(request.room_ids))
        invalid = [room_id for room_id in room_ids if not self.settings.is_valid_room(room_id)]
        if invalid:
            raise InvalidInput(
                "Invalid room ID",
                {"room_ids": invalid, "total_rooms": self.settings.total_rooms},
            )

        if request.private_all and not self.settings.allow_private_all:
            raise InvalidInput("Whole-property booking is not available")

        rooms_qty = len(room_ids) if room_ids else request.rooms_qty
        if rooms_qty < 1 and not request.private_all:
            raise InvalidInput("At least one room must be selected")

        return StayRequest(
            date_range=DateRange(check_in=check_in, check_out=check_out),
            rooms_qty=rooms_qty,
            room_ids=room_ids,
            private_all=request.private_all,
            guest=guest,
        )

    async def check(self, stay: StayRequest) -> ValidatedHold:
        """Checks against current calendar state; call under the stay's date lock"""
        check_in = stay.date_range.check_in
        check_out = stay.date_range.check_out

        if not stay.private_all:
            events = await self.resolver.private_events_between(check_in, check_out)
            for day in sorted(events):
                event = events[day]
                if event.is_private_only:
                    raise PrivateEventOnly(day, event.name, event.price)

        if stay.room_ids and not stay.private_all:
            conflicts = await self.resolver.room_conflicts(stay.room_ids, check_in, check_out)
            if conflicts:
                raise RoomUnavailable(conflicts[0].room_id, conflicts[0].date)

        total_rooms = self.settings.total_rooms
        requested = stay.rooms_requested(total_rooms)
        if total_rooms <= 0:
            raise InsufficientCapacity(check_in, 0, requested)
        booked = await self.resolver.booked_rooms_by_day(check_in, check_out)
        blocked = await self.resolver.blocked_rooms_by_day(check_in, check_out)
        for day in iter_days(check_in, check_out):
            available = total_rooms - booked.get(day, 0) - len(blocked.get(day, set()))
            if available < requested:
                raise InsufficientCapacity(day, max(available, 0), requested)

        total = await self.pricing.compute_total(
            stay.room_ids, stay.rooms_qty, stay.private_all, check_in, check_out
        )
        deposit = self.pricing.compute_deposit(total, self.settings.deposit_percent)
        return ValidatedHold(stay=stay, total=total, deposit=deposit)
