"""Stay pricing"""
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from domain.exceptions import InvalidTotal
from domain.repositories import CalendarStateRepository
from domain.settings import BookingSettings
from domain.value_objects import CalendarOverride, PrivateEvent, iter_days, round_money


class NightlyPrice(BaseModel):
    date: date
    amount: Decimal


class PricingEngine:
    """Prices a stay night by night.

    Per room and night the first match wins: admin override price, special
    pricing event price, the room's own price, the default price. A private
    only event booked as private-all is charged the flat event price instead.
    """

    def __init__(self, calendar_repo: CalendarStateRepository, settings: BookingSettings):
        self.calendar_repo = calendar_repo
        self.settings = settings

    async def compute_total(
        self,
        room_ids: List[int],
        rooms_qty: int,
        private_all: bool,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
        private_event: Optional[PrivateEvent] = None
    ) -> Decimal:
        """Total for the stay; raises InvalidTotal when not positive"""
        if check_in is None or check_out is None:
            total = self._undated_total(rooms_qty, private_all, private_event)
        else:
            nightly = await self.nightly_totals(room_ids, rooms_qty, private_all, check_in, check_out)
            total = sum((night.amount for night in nightly), Decimal("0"))

        total = round_money(total)
        if total <= 0:
            raise InvalidTotal(total)
        return total

    async def nightly_totals(
        self,
        room_ids: List[int],
        rooms_qty: int,
        private_all: bool,
        check_in: date,
        check_out: date,
        earlybird: bool = False
    ) -> List[NightlyPrice]:
        overrides = await self._overrides_by_key(check_in, check_out)
        events = {
            event.date: event
            for event in await self.calendar_repo.find_private_events(check_in, check_out)
        }

        if private_all:
            rooms = self.settings.room_ids()
        else:
            rooms = sorted(set(room_ids))

        nights = []
        for night in iter_days(check_in, check_out):
            event = events.get(night)
            if private_all and event is not None and event.is_private_only:
                amount = event.price
            elif rooms:
                amount = sum(
                    (self._room_price(room_id, night, overrides, event, earlybird) for room_id in rooms),
                    Decimal("0"),
                )
            else:
                # Quantity-only request: no concrete room to look up
                unit = event.price if event is not None and event.is_special_pricing \
                    else self.settings.starting_price()
                amount = unit * rooms_qty
            nights.append(NightlyPrice(date=night, amount=round_money(amount)))
        return nights

    async def estimate_earlybird_total(
        self,
        room_ids: List[int],
        rooms_qty: int,
        private_all: bool,
        check_in: date,
        check_out: date
    ) -> Decimal:
        """Advisory total using early-bird room prices; never used for charging"""
        nightly = await self.nightly_totals(
            room_ids, rooms_qty, private_all, check_in, check_out, earlybird=True
        )
        return round_money(sum((night.amount for night in nightly), Decimal("0")))

    @staticmethod
    def compute_deposit(total: Decimal, percent: Decimal) -> Decimal:
        return round_money(Decimal(total) * Decimal(percent) / Decimal("100"))

    def _room_price(
        self,
        room_id: int,
        night: date,
        overrides: Dict[Tuple[int, date], CalendarOverride],
        event: Optional[PrivateEvent],
        earlybird: bool
    ) -> Decimal:
        override = overrides.get((room_id, night))
        if override is not None and override.price is not None:
            return override.price
        if event is not None and event.is_special_pricing:
            return event.price
        if earlybird:
            earlybird_price = self.settings.earlybird_price(room_id)
            if earlybird_price is not None:
                return earlybird_price
        return self.settings.standard_price(room_id)

    def _undated_total(self, rooms_qty: int, private_all: bool,
                       private_event: Optional[PrivateEvent]) -> Decimal:
        if private_all and private_event is not None:
            return private_event.price
        return self.settings.default_room_price * rooms_qty

    async def _overrides_by_key(self, start: date, end: date) -> Dict[Tuple[int, date], CalendarOverride]:
        return {
            (override.room_id, override.date): override
            for override in await self.calendar_repo.find_overrides(start, end)
        }
