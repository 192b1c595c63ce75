"""Domain Value Objects"""
import re
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, List, Optional, Union

from pydantic import BaseModel, Field, validator

from domain.enums import OverrideStatus, PrivateEventMode, OCCUPYING_OVERRIDE_STATUSES
from domain.exceptions import InvalidInput

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CENTS = Decimal("0.01")


def parse_iso_date(value: Union[date, str, None], field_name: str = "date",
                   error_cls=InvalidInput) -> date:
    """Parse a strict YYYY-MM-DD value"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not ISO_DATE_PATTERN.match(str(value)):
        raise error_cls(
            f"Invalid {field_name} format. Expected YYYY-MM-DD",
            {"field": field_name, "value": value},
        )
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise error_cls(
            f"Invalid {field_name}: {value} is not a calendar date",
            {"field": field_name, "value": value},
        )


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day in [start, end)"""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def round_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


class DateRange(BaseModel):
    """Value Object for a stay; check_out is exclusive"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out must be after check-in')
        return v

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def days(self) -> List[date]:
        return list(iter_days(self.check_in, self.check_out))

    class Config:
        frozen = True


class CalendarOverride(BaseModel):
    """Operator or external-sync fact about one room on one day"""
    room_id: int = Field(ge=1)
    date: date
    status: OverrideStatus = OverrideStatus.BLOCKED
    reason: str = ""
    price: Optional[Decimal] = Field(None, ge=0)
    # Set only when the override was written on behalf of a reservation
    reservation_id: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    created_by: Optional[str] = None

    def is_occupying(self) -> bool:
        return self.status in OCCUPYING_OVERRIDE_STATUSES

    def is_attributed_to(self, reservation_id: int) -> bool:
        return self.reservation_id is not None and self.reservation_id == reservation_id

    def same_state_as(self, other: "CalendarOverride") -> bool:
        """Compare everything except audit metadata"""
        return (
            self.room_id == other.room_id
            and self.date == other.date
            and self.status == other.status
            and self.reason == other.reason
            and self.price == other.price
            and self.reservation_id == other.reservation_id
        )

    class Config:
        frozen = True


class PrivateEvent(BaseModel):
    """Whole-property rule for one date"""
    date: date
    mode: PrivateEventMode = PrivateEventMode.PRIVATE_ONLY
    name: str = "Private Event"
    price: Decimal = Field(Decimal("0"), ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    created_by: Optional[str] = None

    @property
    def is_private_only(self) -> bool:
        return self.mode == PrivateEventMode.PRIVATE_ONLY

    @property
    def is_special_pricing(self) -> bool:
        return self.mode == PrivateEventMode.SPECIAL_PRICING

    class Config:
        frozen = True


class GuestDetails(BaseModel):
    """Buyer attributes; opaque to the core except age"""
    name: str = ""
    email: str = ""
    phone: str = ""
    age: int = Field(0, ge=0)
    guests_qty: int = Field(1, ge=1)
    vat_number: str = ""
    estimated_arrival_time: str = ""
    bringing_pets: bool = False
    pet_details: str = ""

    class Config:
        frozen = True


class HoldRequest(BaseModel):
    """Raw reservation request as received from a booking form.

    Dates stay strings here; ReservationValidator owns format checks so a
    malformed date surfaces as InvalidInput rather than a schema error.
    """
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    rooms_qty: int = 0
    room_ids: List[int] = []
    private_all: bool = False
    guest: Optional[GuestDetails] = None

    @validator('check_in', 'check_out', pre=True)
    def dates_as_text(cls, v):
        if isinstance(v, (date, datetime)):
            return v.isoformat()[:10]
        return v

    class Config:
        frozen = True
