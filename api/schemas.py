"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import Dict, List, Optional


# ============================================================================
# HOLD / QUOTE SCHEMAS
# ============================================================================

class CreateHoldRequest(BaseModel):
    """Create hold request DTO.

    Dates are plain strings so format problems come back as invalid_input.
    """
    check_in: str
    check_out: str
    rooms_qty: int = 0
    room_ids: List[int] = []
    private_all: bool = False
    name: str = ""
    email: str = ""
    phone: str = ""
    age: int = Field(0, ge=0)
    guests_qty: int = Field(1, ge=1)
    vat_number: str = ""
    estimated_arrival_time: str = ""
    bringing_pets: bool = False
    pet_details: str = ""


class HoldResponse(BaseModel):
    """Hold response DTO"""
    reservation_id: int
    buyer_email: str
    total: Decimal
    deposit: Decimal
    currency: str


class NightlyPriceResponse(BaseModel):
    date: date
    amount: Decimal


class QuoteResponse(BaseModel):
    """Quote response DTO"""
    check_in: date
    check_out: date
    nights: int
    total: Decimal
    deposit: Decimal
    currency: str
    nightly: List[NightlyPriceResponse] = []
    earlybird_eligible: bool = False
    earlybird_total: Optional[Decimal] = None


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class GuestResponse(BaseModel):
    name: str
    email: str
    phone: str
    age: int
    guests_qty: int
    vat_number: str
    estimated_arrival_time: str
    bringing_pets: bool
    pet_details: str


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: int
    check_in: date
    check_out: date
    rooms_qty: int
    room_ids: List[int]
    private_all: bool
    total_amount: Decimal
    deposit_amount: Decimal
    currency: str
    status: str
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    guest: GuestResponse
    created_at: datetime
    modified_at: datetime
    version: int


class PaymentRequest(BaseModel):
    """Payment callback DTO"""
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None


class DeleteReservationResponse(BaseModel):
    reservation_id: int
    deleted: bool = True
    overrides_removed: int = 0


class CalendarBlockRequest(BaseModel):
    """Pin reservation on calendar DTO"""
    status: str = "booked"
    reason: Optional[str] = None


# ============================================================================
# CALENDAR SCHEMAS
# ============================================================================

class OverrideResponse(BaseModel):
    """Calendar override response DTO"""
    room_id: int
    date: date
    status: str
    reason: str
    price: Optional[Decimal] = None
    reservation_id: Optional[int] = None
    created_at: datetime
    created_by: Optional[str] = None


class PrivateEventResponse(BaseModel):
    """Private event response DTO"""
    date: date
    mode: str
    name: str
    price: Decimal
    created_at: datetime
    created_by: Optional[str] = None


class DayOccupancyResponse(BaseModel):
    date: date
    booked_rooms: int
    blocked_room_ids: List[int]
    available_rooms: int
    occupied: bool


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    start: date
    end: date
    occupied_dates: List[date]
    daily_prices: Dict[date, Decimal]
    private_events: Dict[date, PrivateEventResponse]
    occupancy: List[DayOccupancyResponse]
    blocked_rooms: Optional[Dict[int, Dict[date, OverrideResponse]]] = None


class BlockDateRequest(BaseModel):
    """Toggle block request DTO"""
    room_id: int
    date: str
    blocked: bool = True
    reason: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)


class SetDateStatusRequest(BaseModel):
    """Set date status request DTO"""
    room_id: int
    date: str
    status: str
    reason: str = ""
    price: Optional[Decimal] = Field(None, ge=0)
    reservation_id: Optional[int] = None


class CalendarResetResponse(BaseModel):
    reset_count: int


class SetPrivateEventRequest(BaseModel):
    """Set private event request DTO"""
    date: str
    name: Optional[str] = None
    price: Decimal = Decimal("0")
    mode: str = "private_only"


class DateInfoResponse(BaseModel):
    """Per-date inspection response DTO"""
    room_id: int
    date: date
    override: Optional[OverrideResponse] = None
    private_event: Optional[PrivateEventResponse] = None
    reservations: List[ReservationResponse] = []
    room_available: bool
    day_occupied: bool


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None

class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
    is_admin: bool = False
