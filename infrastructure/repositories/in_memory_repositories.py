"""In-Memory Repository Implementations"""
from typing import Optional, List, Dict, Tuple
from datetime import date

from domain.repositories import CalendarStateRepository, ReservationRepository
from domain.entities import Reservation
from domain.exceptions import ReservationNotFound
from domain.value_objects import CalendarOverride, PrivateEvent


class InMemoryCalendarStateRepository(CalendarStateRepository):
    """In-memory implementation of CalendarStateRepository"""

    def __init__(self):
        self._overrides: Dict[Tuple[int, date], CalendarOverride] = {}
        self._private_events: Dict[date, PrivateEvent] = {}

    async def get_override(self, room_id: int, day: date) -> Optional[CalendarOverride]:
        return self._overrides.get((room_id, day))

    async def find_overrides(self, start: date, end: date) -> List[CalendarOverride]:
        return [
            override for (_, d), override in sorted(self._overrides.items())
            if start <= d < end
        ]

    async def find_all_overrides(self) -> List[CalendarOverride]:
        return [override for _, override in sorted(self._overrides.items())]

    async def save_override(self, override: CalendarOverride) -> CalendarOverride:
        self._overrides[(override.room_id, override.date)] = override
        return override

    async def delete_override(self, room_id: int, day: date) -> bool:
        if (room_id, day) in self._overrides:
            del self._overrides[(room_id, day)]
            return True
        return False

    async def get_private_event(self, day: date) -> Optional[PrivateEvent]:
        return self._private_events.get(day)

    async def find_private_events(self, start: date, end: date) -> List[PrivateEvent]:
        return [
            event for d, event in sorted(self._private_events.items())
            if start <= d < end
        ]

    async def find_all_private_events(self) -> List[PrivateEvent]:
        return [event for _, event in sorted(self._private_events.items())]

    async def save_private_event(self, event: PrivateEvent) -> PrivateEvent:
        self._private_events[event.date] = event
        return event

    async def delete_private_event(self, day: date) -> bool:
        if day in self._private_events:
            del self._private_events[day]
            return True
        return False


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository.

    Stores copies so a caller mutating an entity does not change the ledger
    until update() is called.
    """

    def __init__(self):
        self._storage: Dict[int, Reservation] = {}
        self._room_assignments: Dict[int, List[int]] = {}
        self._next_id = 1

    async def add(self, reservation: Reservation) -> Reservation:
        reservation_id = self._next_id
        stored = reservation.model_copy(update={"reservation_id": reservation_id}, deep=True)
        self._next_id += 1

        # Both writes happen without yielding, so no reader sees one without the other
        self._storage[reservation_id] = stored
        if stored.room_ids:
            self._room_assignments[reservation_id] = list(stored.room_ids)
        return stored.model_copy(deep=True)

    async def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        reservation = self._storage.get(reservation_id)
        return reservation.model_copy(deep=True) if reservation else None

    async def find_active_overlapping(self, start: date, end: date) -> List[Reservation]:
        return [
            r.model_copy(deep=True) for _, r in sorted(self._storage.items())
            if r.is_active() and r.overlaps(start, end)
        ]

    async def find_all(self) -> List[Reservation]:
        return [r.model_copy(deep=True) for _, r in sorted(self._storage.items())]

    async def update(self, reservation: Reservation) -> Reservation:
        if reservation.reservation_id in self._storage:
            self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
            return reservation
        raise ReservationNotFound(reservation.reservation_id)

    async def find_room_assignment(self, reservation_id: int) -> List[int]:
        return list(self._room_assignments.get(reservation_id, []))

    async def delete(self, reservation_id: int) -> bool:
        if reservation_id in self._storage:
            del self._storage[reservation_id]
            self._room_assignments.pop(reservation_id, None)
            return True
        return False
