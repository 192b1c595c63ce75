"""Booking configuration injected into every component"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class RoomConfig(BaseModel):
    """Per-room configuration; index 0 describes room 1"""
    name: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    earlybird_price: Optional[Decimal] = Field(None, ge=0)

    class Config:
        frozen = True


class BookingSettings(BaseModel):
    """Versioned, immutable settings snapshot"""
    version: int = 1
    total_rooms: int = Field(7, ge=0)
    default_room_price: Decimal = Field(Decimal("0"), ge=0)
    rooms: List[RoomConfig] = []
    deposit_percent: Decimal = Field(Decimal("30"), ge=0, le=100)
    earlybird_days: int = Field(30, ge=0)
    currency: str = "EUR"
    rooms_enabled: bool = True
    allow_private_all: bool = True
    age_field_enabled: bool = False
    min_age: int = Field(0, ge=0)

    class Config:
        frozen = True

    def room_ids(self) -> List[int]:
        return list(range(1, self.total_rooms + 1))

    def is_valid_room(self, room_id: int) -> bool:
        return 1 <= room_id <= self.total_rooms

    def room_config(self, room_id: int) -> RoomConfig:
        index = room_id - 1
        if 0 <= index < len(self.rooms):
            return self.rooms[index]
        return RoomConfig()

    def standard_price(self, room_id: int) -> Decimal:
        """Room's own price, or the global default when unset"""
        price = self.room_config(room_id).price
        if price is not None and price > 0:
            return price
        return self.default_room_price

    def earlybird_price(self, room_id: int) -> Optional[Decimal]:
        price = self.room_config(room_id).earlybird_price
        if price is not None and price > 0:
            return price
        return None

    def starting_price(self) -> Decimal:
        """Lowest standard price across all rooms ("starting from")"""
        prices = [self.standard_price(room_id) for room_id in self.room_ids()]
        prices = [p for p in prices if p > 0]
        return min(prices) if prices else self.default_room_price
