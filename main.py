from fastapi import FastAPI, HTTPException, Depends, Query
from datetime import timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Holds
    CreateHoldRequest, HoldResponse, QuoteResponse,
    # Reservations
    ReservationResponse, PaymentRequest, DeleteReservationResponse, CalendarBlockRequest,
    # Calendar
    AvailabilityResponse, BlockDateRequest, SetDateStatusRequest, OverrideResponse,
    CalendarResetResponse, SetPrivateEventRequest, PrivateEventResponse, DateInfoResponse,
    # Auth
    Token, UserResponse
)
from api.dependencies import (
    get_current_active_user, get_current_admin_user, get_optional_user, fake_users_db, get_user
)
from api.exception_handlers import register_exception_handlers
from infrastructure.security import verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.config import load_settings
from infrastructure.events import InMemoryEventPublisher
from infrastructure.locking import DateRangeLock
from infrastructure.logging import get_logger
from domain.auth import User
from domain.enums import ReservationStatus, OverrideStatus, PrivateEventMode, FREE_STATUS
from domain.events import EventPublisher
from domain.exceptions import InvalidInput
from domain.repositories import CalendarStateRepository, ReservationRepository
from domain.settings import BookingSettings
from domain.value_objects import GuestDetails, HoldRequest

from application.availability import AvailabilityResolver
from application.services import ReservationLifecycleManager, CalendarAdminService, QuoteService
from infrastructure.repositories.in_memory_repositories import (
    InMemoryCalendarStateRepository, InMemoryReservationRepository
)

logger = get_logger(__name__)

app = FastAPI(
    title="Room Booking Calendar API",
    description="Availability, pricing and reservation holds for a pool of rooms",
    version="1.0.0"
)
register_exception_handlers(app)

# Initialize settings, repositories and shared collaborators
settings = load_settings()
calendar_repo = InMemoryCalendarStateRepository()
reservation_repo = InMemoryReservationRepository()
event_publisher = InMemoryEventPublisher()
booking_lock = DateRangeLock()

# Dependency injection
def get_settings() -> BookingSettings:
    return settings

def get_calendar_repository() -> CalendarStateRepository:
    return calendar_repo

def get_reservation_repository() -> ReservationRepository:
    return reservation_repo

def get_event_publisher() -> EventPublisher:
    return event_publisher

def get_booking_lock() -> DateRangeLock:
    return booking_lock

def get_lifecycle_manager(
    reservations: ReservationRepository = Depends(get_reservation_repository),
    calendar: CalendarStateRepository = Depends(get_calendar_repository),
    booking_settings: BookingSettings = Depends(get_settings),
    lock: DateRangeLock = Depends(get_booking_lock),
    publisher: EventPublisher = Depends(get_event_publisher)
) -> ReservationLifecycleManager:
    return ReservationLifecycleManager(reservations, calendar, booking_settings, lock, publisher)

def get_calendar_admin_service(
    calendar: CalendarStateRepository = Depends(get_calendar_repository),
    reservations: ReservationRepository = Depends(get_reservation_repository),
    booking_settings: BookingSettings = Depends(get_settings),
    lock: DateRangeLock = Depends(get_booking_lock)
) -> CalendarAdminService:
    return CalendarAdminService(calendar, reservations, booking_settings, lock)

def get_availability_resolver(
    calendar: CalendarStateRepository = Depends(get_calendar_repository),
    reservations: ReservationRepository = Depends(get_reservation_repository),
    booking_settings: BookingSettings = Depends(get_settings)
) -> AvailabilityResolver:
    return AvailabilityResolver(calendar, reservations, booking_settings)

def get_quote_service(
    calendar: CalendarStateRepository = Depends(get_calendar_repository),
    reservations: ReservationRepository = Depends(get_reservation_repository),
    booking_settings: BookingSettings = Depends(get_settings)
) -> QuoteService:
    return QuoteService(calendar, reservations, booking_settings)

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.value for item in ReservationStatus],
        "description": "Pending and paid reservations hold capacity; cancelled and failed do not"
    }

@app.get("/api/enums/override-status", tags=["Enum Reference"])
async def get_override_statuses():
    """Get all OverrideStatus enum values"""
    return {
        "values": [item.value for item in OverrideStatus],
        "description": f"Every override status takes the room out of the pool; '{FREE_STATUS}' removes the override"
    }

@app.get("/api/enums/private-event-mode", tags=["Enum Reference"])
async def get_private_event_modes():
    """Get all PrivateEventMode enum values"""
    return {
        "values": [item.value for item in PrivateEventMode],
        "description": "private_only: whole-property bookings only; special_pricing: flat per-room price"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# HOLD & QUOTE ENDPOINTS
# ============================================================================

@app.post("/api/holds", response_model=HoldResponse, status_code=201, tags=["Holds"])
async def create_hold(
    request: CreateHoldRequest,
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    booking_settings: BookingSettings = Depends(get_settings)
):
    """Create a pending reservation for the requested stay"""
    # Minimum age is a booking-form rule, not part of availability
    if booking_settings.age_field_enabled and request.age < booking_settings.min_age:
        raise InvalidInput(
            f"You must be at least {booking_settings.min_age} years old to book",
            {"min_age": booking_settings.min_age, "age": request.age}
        )
    result = await service.create_hold(_hold_request(request))
    return HoldResponse(**result.model_dump())

@app.get("/api/quote", response_model=QuoteResponse, tags=["Holds"])
async def get_quote(
    check_in: str = Query(...),
    check_out: str = Query(...),
    rooms_qty: int = 0,
    room_ids: List[int] = Query([]),
    private_all: bool = False,
    service: QuoteService = Depends(get_quote_service)
):
    """Price a stay without creating a reservation"""
    quote = await service.quote(HoldRequest(
        check_in=check_in,
        check_out=check_out,
        rooms_qty=rooms_qty,
        room_ids=room_ids,
        private_all=private_all
    ))
    return QuoteResponse(**quote.model_dump())

@app.get("/api/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def get_availability(
    from_date: str = Query(..., alias="from"),
    to_date: str = Query(..., alias="to"),
    detailed: bool = False,
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Occupied dates and daily prices; the per-room override map needs an admin token"""
    if detailed and (current_user is None or not current_user.is_admin):
        raise HTTPException(status_code=403, detail="Detailed availability requires administrator privileges")
    snapshot = await resolver.compute_availability(from_date, to_date, detailed=detailed)
    return AvailabilityResponse(**snapshot.model_dump(mode="json"))

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_all_reservations(
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    current_user: User = Depends(get_current_active_user)
):
    """Get all reservations"""
    reservations = await service.get_all_reservations()
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: int,
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/payment", response_model=ReservationResponse, tags=["Reservations"])
async def mark_reservation_paid(
    reservation_id: int,
    request: PaymentRequest,
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    current_user: User = Depends(get_current_admin_user)
):
    """Payment callback: capture succeeded"""
    reservation = await service.mark_paid(reservation_id, request.payment_method, request.payment_id)
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/failure", response_model=ReservationResponse, tags=["Reservations"])
async def mark_reservation_failed(
    reservation_id: int,
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    current_user: User = Depends(get_current_admin_user)
):
    """Payment callback: capture failed"""
    reservation = await service.mark_failed(reservation_id)
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: int,
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    current_user: User = Depends(get_current_admin_user)
):
    """Cancel reservation"""
    reservation = await service.cancel(reservation_id)
    return _reservation_to_response(reservation)

@app.delete("/api/reservations/{reservation_id}", response_model=DeleteReservationResponse, tags=["Reservations"])
async def delete_reservation(
    reservation_id: int,
    service: ReservationLifecycleManager = Depends(get_lifecycle_manager),
    current_user: User = Depends(get_current_admin_user)
):
    """Delete reservation"""
    removed = await service.delete(reservation_id)
    return DeleteReservationResponse(reservation_id=reservation_id, overrides_removed=removed)

@app.post("/api/reservations/{reservation_id}/calendar-block", response_model=List[OverrideResponse], tags=["Reservations"])
async def block_reservation_dates(
    reservation_id: int,
    request: CalendarBlockRequest,
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Pin a reservation's rooms and nights on the admin calendar"""
    overrides = await service.block_reservation_dates(
        reservation_id, request.status, request.reason, actor=current_user.username
    )
    return [_override_to_response(o) for o in overrides]

# ============================================================================
# CALENDAR ADMIN ENDPOINTS
# ============================================================================

@app.post("/api/calendar/block", response_model=Optional[OverrideResponse], tags=["Calendar"])
async def toggle_block(
    request: BlockDateRequest,
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Block or unblock one room on one date"""
    override = await service.toggle_block(
        request.room_id, request.date, request.blocked,
        reason=request.reason, price=request.price, actor=current_user.username
    )
    return _override_to_response(override) if override else None

@app.put("/api/calendar/status", response_model=Optional[OverrideResponse], tags=["Calendar"])
async def set_date_status(
    request: SetDateStatusRequest,
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Set any override status on one room and date ("free" clears it)"""
    override = await service.set_date_status(
        request.room_id, request.date, request.status,
        reason=request.reason, price=request.price,
        reservation_id=request.reservation_id, actor=current_user.username
    )
    return _override_to_response(override) if override else None

@app.delete("/api/calendar/overrides", response_model=CalendarResetResponse, tags=["Calendar"])
async def reset_calendar(
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Remove every override"""
    count = await service.reset_overrides(actor=current_user.username)
    return CalendarResetResponse(reset_count=count)

@app.get("/api/calendar/date-info", response_model=DateInfoResponse, tags=["Calendar"])
async def get_date_info(
    room_id: int,
    date: str,
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Override, private event and reservations for one room on one date"""
    info = await service.get_date_info(room_id, date)
    return DateInfoResponse(
        room_id=info.room_id,
        date=info.date,
        override=_override_to_response(info.override) if info.override else None,
        private_event=_private_event_to_response(info.private_event) if info.private_event else None,
        reservations=[_reservation_to_response(r) for r in info.reservations],
        room_available=info.room_available,
        day_occupied=info.day_occupied
    )

@app.get("/api/calendar/private-events", response_model=List[PrivateEventResponse], tags=["Calendar"])
async def list_private_events(
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """List private events"""
    events = await service.list_private_events()
    return [_private_event_to_response(e) for e in events]

@app.put("/api/calendar/private-events", response_model=PrivateEventResponse, tags=["Calendar"])
async def set_private_event(
    request: SetPrivateEventRequest,
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Create or replace the private event for a date"""
    event = await service.set_private_event(
        request.date, name=request.name, price=request.price,
        mode=request.mode, actor=current_user.username
    )
    return _private_event_to_response(event)

@app.delete("/api/calendar/private-events/{event_date}", status_code=204, tags=["Calendar"])
async def remove_private_event(
    event_date: str,
    service: CalendarAdminService = Depends(get_calendar_admin_service),
    current_user: User = Depends(get_current_admin_user)
):
    """Remove the private event for a date"""
    await service.remove_private_event(event_date, actor=current_user.username)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _hold_request(request: CreateHoldRequest) -> HoldRequest:
    """Convert CreateHoldRequest DTO to HoldRequest"""
    return HoldRequest(
        check_in=request.check_in,
        check_out=request.check_out,
        rooms_qty=request.rooms_qty,
        room_ids=request.room_ids,
        private_all=request.private_all,
        guest=GuestDetails(
            name=request.name,
            email=request.email,
            phone=request.phone,
            age=request.age,
            guests_qty=request.guests_qty,
            vat_number=request.vat_number,
            estimated_arrival_time=request.estimated_arrival_time,
            bringing_pets=request.bringing_pets,
            pet_details=request.pet_details
        )
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
        rooms_qty=reservation.rooms_qty,
        room_ids=reservation.room_ids,
        private_all=reservation.private_all,
        total_amount=reservation.total_amount,
        deposit_amount=reservation.deposit_amount,
        currency=reservation.currency,
        status=reservation.status.value,
        payment_method=reservation.payment_method,
        payment_id=reservation.payment_id,
        guest=reservation.guest.model_dump(),
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _override_to_response(override) -> OverrideResponse:
    """Convert CalendarOverride to OverrideResponse"""
    return OverrideResponse(
        room_id=override.room_id,
        date=override.date,
        status=override.status.value,
        reason=override.reason,
        price=override.price,
        reservation_id=override.reservation_id,
        created_at=override.created_at,
        created_by=override.created_by
    )

def _private_event_to_response(event) -> PrivateEventResponse:
    """Convert PrivateEvent to PrivateEventResponse"""
    return PrivateEventResponse(
        date=event.date,
        mode=event.mode.value,
        name=event.name,
        price=event.price,
        created_at=event.created_at,
        created_by=event.created_by
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
