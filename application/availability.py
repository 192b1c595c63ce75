"""Availability resolution

Occupancy has two sources: the reservation ledger and the admin override map.
AvailabilityResolver is the only component that combines them; the validator,
the admin service and the HTTP layer all read occupancy through it.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Union

from pydantic import BaseModel

from domain.entities import Reservation
from domain.exceptions import InvalidDateRange
from domain.repositories import CalendarStateRepository, ReservationRepository
from domain.settings import BookingSettings
from domain.value_objects import CalendarOverride, PrivateEvent, iter_days, parse_iso_date


class DayOccupancy(BaseModel):
    date: date
    booked_rooms: int = 0
    blocked_room_ids: List[int] = []
    available_rooms: int = 0
    occupied: bool = False


class AvailabilitySnapshot(BaseModel):
    """Calendar state for an inclusive date range"""
    start: date
    end: date
    occupied_dates: List[date] = []
    daily_prices: Dict[date, Decimal] = {}
    private_events: Dict[date, PrivateEvent] = {}
    occupancy: List[DayOccupancy] = []
    # Only filled for detailed (admin) requests
    blocked_rooms: Optional[Dict[int, Dict[date, CalendarOverride]]] = None


class DateInfo(BaseModel):
    """Everything known about one room on one day"""
    room_id: int
    date: date
    override: Optional[CalendarOverride] = None
    private_event: Optional[PrivateEvent] = None
    reservations: List[Reservation] = []
    room_available: bool = True
    day_occupied: bool = False


class AvailabilityResolver:
    """Derives occupied dates and display prices from ledger and overrides"""

    def __init__(self,
                 calendar_repo: CalendarStateRepository,
                 reservation_repo: ReservationRepository,
                 settings: BookingSettings):
        self.calendar_repo = calendar_repo
        self.reservation_repo = reservation_repo
        self.settings = settings

    async def compute_availability(
        self,
        start: Union[date, str],
        end: Union[date, str],
        detailed: bool = False
    ) -> AvailabilitySnapshot:
        """Occupancy and prices for every day in [start, end]"""
        start_date = parse_iso_date(start, "from", error_cls=InvalidDateRange)
        end_date = parse_iso_date(end, "to", error_cls=InvalidDateRange)
        if start_date > end_date:
            raise InvalidDateRange(
                "Start date must not be after end date",
                {"from": start_date.isoformat(), "to": end_date.isoformat()},
            )

        range_end = end_date + timedelta(days=1)
        days = list(iter_days(start_date, range_end))
        total_rooms = self.settings.total_rooms

        if total_rooms <= 0:
            # Nothing can be sold, so nothing is priced
            return AvailabilitySnapshot(
                start=start_date,
                end=end_date,
                occupied_dates=days,
                occupancy=[DayOccupancy(date=day, occupied=True) for day in days],
            )

        booked = await self.booked_rooms_by_day(start_date, range_end)
        overrides = await self._occupying_overrides(start_date, range_end)
        blocked = self._group_by_day(overrides)
        events = await self.private_events_between(start_date, range_end)
        custom_prices = await self._min_override_prices(start_date, range_end)
        starting_price = self.settings.starting_price()

        snapshot = AvailabilitySnapshot(start=start_date, end=end_date, private_events=events)
        for day in days:
            booked_count = booked.get(day, 0)
            blocked_ids = sorted(blocked.get(day, set()))
            available = max(total_rooms - booked_count - len(blocked_ids), 0)
            occupied = booked_count + len(blocked_ids) >= total_rooms

            snapshot.occupancy.append(DayOccupancy(
                date=day,
                booked_rooms=booked_count,
                blocked_room_ids=blocked_ids,
                available_rooms=available,
                occupied=occupied,
            ))
            if occupied:
                snapshot.occupied_dates.append(day)

            event = events.get(day)
            if day in custom_prices:
                snapshot.daily_prices[day] = custom_prices[day]
            elif event is not None and event.is_special_pricing:
                snapshot.daily_prices[day] = event.price
            else:
                snapshot.daily_prices[day] = starting_price

        if detailed:
            snapshot.blocked_rooms = {}
            for override in overrides:
                snapshot.blocked_rooms.setdefault(override.room_id, {})[override.date] = override

        return snapshot

    async def booked_rooms_by_day(self, start: date, end: date) -> Dict[date, int]:
        """Rooms consumed by paid/pending reservations per day in [start, end)"""
        booked: Dict[date, int] = {}
        reservations = await self.reservation_repo.find_active_overlapping(start, end)
        for reservation in reservations:
            consumed = reservation.rooms_consumed(self.settings.total_rooms)
            for day in iter_days(max(reservation.check_in, start), min(reservation.check_out, end)):
                booked[day] = booked.get(day, 0) + consumed
        return booked

    async def blocked_rooms_by_day(self, start: date, end: date) -> Dict[date, Set[int]]:
        """Room ids taken out by an occupying override per day in [start, end)"""
        return self._group_by_day(await self._occupying_overrides(start, end))

    async def room_conflicts(self, room_ids: Iterable[int], start: date, end: date) -> List[CalendarOverride]:
        """Occupying overrides on the given rooms in [start, end), by room then date"""
        wanted = set(room_ids)
        conflicts = [
            override for override in await self._occupying_overrides(start, end)
            if override.room_id in wanted
        ]
        return sorted(conflicts, key=lambda o: (o.room_id, o.date))

    async def private_events_between(self, start: date, end: date) -> Dict[date, PrivateEvent]:
        events = await self.calendar_repo.find_private_events(start, end)
        return {event.date: event for event in events}

    async def date_detail(self, room_id: int, day: date) -> DateInfo:
        next_day = day + timedelta(days=1)
        override = await self.calendar_repo.get_override(room_id, day)
        event = await self.calendar_repo.get_private_event(day)

        affecting = []
        for reservation in await self.reservation_repo.find_active_overlapping(day, next_day):
            assigned = await self.reservation_repo.find_room_assignment(reservation.reservation_id)
            if reservation.affects_room(room_id, assigned):
                affecting.append(reservation)

        booked = (await self.booked_rooms_by_day(day, next_day)).get(day, 0)
        blocked = (await self.blocked_rooms_by_day(day, next_day)).get(day, set())
        room_blocked = override is not None and override.is_occupying()

        return DateInfo(
            room_id=room_id,
            date=day,
            override=override,
            private_event=event,
            reservations=affecting,
            room_available=not room_blocked and not affecting,
            day_occupied=booked + len(blocked) >= self.settings.total_rooms,
        )

    async def _occupying_overrides(self, start: date, end: date) -> List[CalendarOverride]:
        overrides = await self.calendar_repo.find_overrides(start, end)
        # Rooms beyond total_rooms are left over from an older configuration
        return [
            o for o in overrides
            if o.is_occupying() and self.settings.is_valid_room(o.room_id)
        ]

    async def _min_override_prices(self, start: date, end: date) -> Dict[date, Decimal]:
        prices: Dict[date, Decimal] = {}
        for override in await self.calendar_repo.find_overrides(start, end):
            if override.price is None or not self.settings.is_valid_room(override.room_id):
                continue
            current = prices.get(override.date)
            if current is None or override.price < current:
                prices[override.date] = override.price
        return prices

    @staticmethod
    def _group_by_day(overrides: Iterable[CalendarOverride]) -> Dict[date, Set[int]]:
        grouped: Dict[date, Set[int]] = {}
        for override in overrides:
            grouped.setdefault(override.date, set()).add(override.room_id)
        return grouped
