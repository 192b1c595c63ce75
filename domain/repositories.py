"""Domain Repository Interfaces

Implementations must raise PersistenceError on storage failure and must never
leave a partial write behind.
"""
from abc import ABC, abstractmethod
from typing import Optional, List
from datetime import date

from domain.entities import Reservation
from domain.value_objects import CalendarOverride, PrivateEvent


class CalendarStateRepository(ABC):
    """Repository interface for admin overrides and private events"""

    @abstractmethod
    async def get_override(self, room_id: int, day: date) -> Optional[CalendarOverride]:
        """Find override for a room and day"""
        pass

    @abstractmethod
    async def find_overrides(self, start: date, end: date) -> List[CalendarOverride]:
        """Find overrides with start <= date < end"""
        pass

    @abstractmethod
    async def find_all_overrides(self) -> List[CalendarOverride]:
        """Find every override"""
        pass

    @abstractmethod
    async def save_override(self, override: CalendarOverride) -> CalendarOverride:
        """Insert or replace the override for (room_id, date)"""
        pass

    @abstractmethod
    async def delete_override(self, room_id: int, day: date) -> bool:
        """Delete override, True if one existed"""
        pass

    @abstractmethod
    async def get_private_event(self, day: date) -> Optional[PrivateEvent]:
        """Find private event for a day"""
        pass

    @abstractmethod
    async def find_private_events(self, start: date, end: date) -> List[PrivateEvent]:
        """Find private events with start <= date < end"""
        pass

    @abstractmethod
    async def find_all_private_events(self) -> List[PrivateEvent]:
        """Find every private event"""
        pass

    @abstractmethod
    async def save_private_event(self, event: PrivateEvent) -> PrivateEvent:
        """Insert or replace the private event for its date"""
        pass

    @abstractmethod
    async def delete_private_event(self, day: date) -> bool:
        """Delete private event, True if one existed"""
        pass


class ReservationRepository(ABC):
    """Repository interface for the Reservation ledger"""

    @abstractmethod
    async def add(self, reservation: Reservation) -> Reservation:
        """Insert reservation and its explicit room association atomically.

        Assigns reservation_id.
        """
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_active_overlapping(self, start: date, end: date) -> List[Reservation]:
        """Find paid/pending reservations whose stay intersects [start, end)"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass

    @abstractmethod
    async def find_room_assignment(self, reservation_id: int) -> List[int]:
        """Explicit room ids persisted for a reservation, empty when none"""
        pass

    @abstractmethod
    async def delete(self, reservation_id: int) -> bool:
        """Delete reservation together with its room association"""
        pass
