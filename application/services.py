"""Application Services - Business use cases"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Union

from pydantic import BaseModel

from application.availability import AvailabilityResolver, DateInfo
from application.pricing import NightlyPrice, PricingEngine
from application.validation import ReservationValidator, StayRequest
from domain.entities import Reservation
from domain.enums import FREE_STATUS, OverrideStatus, PrivateEventMode
from domain.events import EventPublisher, ReservationCreated
from domain.exceptions import (
    BookingError, InvalidInput, InvalidStatusTransition, PrivateEventNotFound, ReservationNotFound
)
from domain.repositories import CalendarStateRepository, ReservationRepository
from domain.settings import BookingSettings
from domain.value_objects import CalendarOverride, HoldRequest, PrivateEvent, parse_iso_date
from infrastructure.locking import DateRangeLock
from infrastructure.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BLOCK_REASON = "Set via API"


class HoldResult(BaseModel):
    reservation_id: int
    buyer_email: str
    total: Decimal
    deposit: Decimal
    currency: str


class Quote(BaseModel):
    check_in: date
    check_out: date
    nights: int
    total: Decimal
    deposit: Decimal
    currency: str
    nightly: List[NightlyPrice] = []
    earlybird_eligible: bool = False
    earlybird_total: Optional[Decimal] = None


def _build_validator(calendar_repo: CalendarStateRepository,
                     reservation_repo: ReservationRepository,
                     settings: BookingSettings) -> ReservationValidator:
    resolver = AvailabilityResolver(calendar_repo, reservation_repo, settings)
    pricing = PricingEngine(calendar_repo, settings)
    return ReservationValidator(resolver, pricing, settings)


class ReservationLifecycleManager:
    """Service for the hold -> paid/failed/cancelled -> deleted lifecycle"""

    def __init__(self,
                 reservation_repo: ReservationRepository,
                 calendar_repo: CalendarStateRepository,
                 settings: BookingSettings,
                 lock: Optional[DateRangeLock] = None,
                 publisher: Optional[EventPublisher] = None,
                 validator: Optional[ReservationValidator] = None):
        self.reservation_repo = reservation_repo
        self.calendar_repo = calendar_repo
        self.settings = settings
        self.lock = lock or DateRangeLock()
        self.publisher = publisher
        self.validator = validator or _build_validator(calendar_repo, reservation_repo, settings)

    async def create_hold(self, request: HoldRequest) -> HoldResult:
        """Validate, price and record a pending reservation.

        Validation and insert run under the locks of every night of the stay, so
        two holds competing for the last room cannot both succeed. No calendar
        override is written; the ledger alone records the consumed capacity.
        """
        try:
            stay = self.validator.normalize(request)
            date_range = stay.date_range
            async with self.lock.hold(date_range.check_in, date_range.check_out):
                validated = await self.validator.check(stay)
                reservation = Reservation.create(
                    date_range=date_range,
                    rooms_qty=stay.rooms_qty,
                    room_ids=stay.room_ids,
                    private_all=stay.private_all,
                    total_amount=validated.total,
                    deposit_amount=validated.deposit,
                    currency=self.settings.currency,
                    guest=stay.guest
                )
                saved = await self.reservation_repo.add(reservation)
        except BookingError as e:
            logger.info(
                "hold_rejected",
                extra={"extra_fields": {"code": e.code, "details": e.details}},
            )
            raise

        logger.info(
            "hold_created",
            extra={"extra_fields": {
                "reservation_id": saved.reservation_id,
                "check_in": saved.check_in.isoformat(),
                "check_out": saved.check_out.isoformat(),
                "rooms_qty": saved.rooms_qty,
                "private_all": saved.private_all,
                "total": str(saved.total_amount),
            }},
        )
        self._publish_created(saved, stay)

        return HoldResult(
            reservation_id=saved.reservation_id,
            buyer_email=saved.guest.email,
            total=saved.total_amount,
            deposit=saved.deposit_amount,
            currency=saved.currency
        )

    async def get_reservation(self, reservation_id: int) -> Reservation:
        reservation = await self.reservation_repo.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    async def get_all_reservations(self) -> List[Reservation]:
        return await self.reservation_repo.find_all()

    async def mark_paid(self, reservation_id: int,
                        payment_method: Optional[str] = None,
                        payment_id: Optional[str] = None) -> Reservation:
        """Payment collaborator callback: capture succeeded"""
        reservation = await self.get_reservation(reservation_id)
        async with self.lock.hold(reservation.check_in, reservation.check_out):
            reservation = await self.get_reservation(reservation_id)
            reservation.mark_paid(payment_method, payment_id)
            reservation = await self.reservation_repo.update(reservation)
        logger.info(
            "reservation_paid",
            extra={"extra_fields": {"reservation_id": reservation_id, "payment_method": payment_method}},
        )
        return reservation

    async def mark_failed(self, reservation_id: int) -> Reservation:
        """Payment collaborator callback: capture failed, capacity is released"""
        reservation = await self.get_reservation(reservation_id)
        async with self.lock.hold(reservation.check_in, reservation.check_out):
            reservation = await self.get_reservation(reservation_id)
            reservation.mark_failed()
            # Overrides go first; the status is only committed once they are gone
            removed = await self._remove_attributed_overrides(reservation)
            reservation = await self.reservation_repo.update(reservation)
        logger.info(
            "reservation_failed",
            extra={"extra_fields": {"reservation_id": reservation_id, "overrides_removed": removed}},
        )
        return reservation

    async def cancel(self, reservation_id: int) -> Reservation:
        """Cancel and remove the overrides attributed to this reservation"""
        reservation = await self.get_reservation(reservation_id)
        async with self.lock.hold(reservation.check_in, reservation.check_out):
            reservation = await self.get_reservation(reservation_id)
            reservation.cancel()
            # Overrides go first; a failed cleanup leaves the order cancellable
            removed = await self._remove_attributed_overrides(reservation)
            reservation = await self.reservation_repo.update(reservation)
        logger.info(
            "reservation_cancelled",
            extra={"extra_fields": {"reservation_id": reservation_id, "overrides_removed": removed}},
        )
        return reservation

    async def delete(self, reservation_id: int) -> int:
        """Delete the reservation and its attributed overrides.

        Returns the number of overrides removed.
        """
        reservation = await self.get_reservation(reservation_id)
        async with self.lock.hold(reservation.check_in, reservation.check_out):
            reservation = await self.get_reservation(reservation_id)
            removed = await self._remove_attributed_overrides(reservation)
            await self.reservation_repo.delete(reservation_id)
        logger.info(
            "reservation_deleted",
            extra={"extra_fields": {"reservation_id": reservation_id, "overrides_removed": removed}},
        )
        return removed

    async def _remove_attributed_overrides(self, reservation: Reservation) -> int:
        assigned = await self.reservation_repo.find_room_assignment(reservation.reservation_id)
        if reservation.private_all or not assigned:
            rooms = set(self.settings.room_ids())
        else:
            rooms = set(assigned)

        removed = 0
        overrides = await self.calendar_repo.find_overrides(reservation.check_in, reservation.check_out)
        for override in overrides:
            if override.room_id in rooms and override.is_attributed_to(reservation.reservation_id):
                if await self.calendar_repo.delete_override(override.room_id, override.date):
                    removed += 1
        return removed

    def _publish_created(self, reservation: Reservation, stay: StayRequest) -> None:
        if self.publisher is None:
            return
        event = ReservationCreated(
            reservation_id=reservation.reservation_id,
            payload={
                "check_in": reservation.check_in.isoformat(),
                "check_out": reservation.check_out.isoformat(),
                "rooms_qty": stay.rooms_qty,
                "room_ids": list(stay.room_ids),
                "private_all": stay.private_all,
                "total": str(reservation.total_amount),
                "deposit": str(reservation.deposit_amount),
                "currency": reservation.currency,
                "guest": stay.guest.model_dump(),
            },
        )
        try:
            self.publisher.publish(event)
        except Exception:
            # The hold is committed; delivery problems must not undo it
            logger.exception(
                "event_delivery_failed",
                extra={"extra_fields": {"event_type": event.event_type,
                                        "reservation_id": reservation.reservation_id}},
            )


class CalendarAdminService:
    """Operator-facing calendar mutations and inspection"""

    def __init__(self,
                 calendar_repo: CalendarStateRepository,
                 reservation_repo: ReservationRepository,
                 settings: BookingSettings,
                 lock: Optional[DateRangeLock] = None,
                 clock: Callable[[], date] = date.today):
        self.calendar_repo = calendar_repo
        self.reservation_repo = reservation_repo
        self.settings = settings
        self.lock = lock or DateRangeLock()
        self.clock = clock
        self.resolver = AvailabilityResolver(calendar_repo, reservation_repo, settings)

    def _check_room(self, room_id: int) -> None:
        if not self.settings.is_valid_room(room_id):
            raise InvalidInput(
                "Invalid room ID",
                {"room_id": room_id, "total_rooms": self.settings.total_rooms},
            )

    async def toggle_block(
        self,
        room_id: int,
        day: Union[date, str],
        blocked: bool,
        reason: Optional[str] = None,
        price: Optional[Decimal] = None,
        actor: Optional[str] = None
    ) -> Optional[CalendarOverride]:
        """Block or free one room on one day; repeating a block changes nothing"""
        self._check_room(room_id)
        day = parse_iso_date(day)

        async with self.lock.hold_dates([day]):
            if not blocked:
                await self.calendar_repo.delete_override(room_id, day)
                self._log_override(room_id, day, FREE_STATUS, actor)
                return None

            override = self._new_override(
                room_id, day, OverrideStatus.BLOCKED, reason or DEFAULT_BLOCK_REASON, price, None, actor
            )
            existing = await self.calendar_repo.get_override(room_id, day)
            if existing is not None and existing.same_state_as(override):
                return existing
            saved = await self.calendar_repo.save_override(override)
        self._log_override(room_id, day, override.status.value, actor)
        return saved

    async def set_date_status(
        self,
        room_id: int,
        day: Union[date, str],
        status: str,
        reason: str = "",
        price: Optional[Decimal] = None,
        reservation_id: Optional[int] = None,
        actor: Optional[str] = None
    ) -> Optional[CalendarOverride]:
        """Write any override status; "free" removes the override"""
        self._check_room(room_id)
        day = parse_iso_date(day)
        status_value = status.value if isinstance(status, OverrideStatus) else str(status).lower()

        if status_value == FREE_STATUS:
            async with self.lock.hold_dates([day]):
                await self.calendar_repo.delete_override(room_id, day)
            self._log_override(room_id, day, FREE_STATUS, actor)
            return None

        try:
            override_status = OverrideStatus(status_value)
        except ValueError:
            raise InvalidInput(
                "Invalid status",
                {"status": status, "allowed": [FREE_STATUS] + [s.value for s in OverrideStatus]},
            )

        override = self._new_override(room_id, day, override_status, reason, price, reservation_id, actor)
        async with self.lock.hold_dates([day]):
            saved = await self.calendar_repo.save_override(override)
        self._log_override(room_id, day, override_status.value, actor)
        return saved

    async def reset_overrides(self, actor: Optional[str] = None) -> int:
        """Delete every override seen at call time; returns how many were removed"""
        existing = await self.calendar_repo.find_all_overrides()
        count = 0
        async with self.lock.hold_dates(o.date for o in existing):
            for override in existing:
                if await self.calendar_repo.delete_override(override.room_id, override.date):
                    count += 1
        logger.info(
            "calendar_reset",
            extra={"extra_fields": {"reset_count": count, "actor": actor}},
        )
        return count

    async def set_private_event(
        self,
        day: Union[date, str],
        name: Optional[str] = None,
        price: Decimal = Decimal("0"),
        mode: Union[PrivateEventMode, str] = PrivateEventMode.PRIVATE_ONLY,
        actor: Optional[str] = None
    ) -> PrivateEvent:
        day = parse_iso_date(day)
        if day < self.clock():
            raise InvalidInput("Cannot set private events for past dates", {"date": day.isoformat()})
        if Decimal(price) < 0:
            raise InvalidInput("Price must be a positive number", {"price": str(price)})
        try:
            event_mode = PrivateEventMode(mode)
        except ValueError:
            raise InvalidInput(
                "Invalid private event mode",
                {"mode": mode, "allowed": [m.value for m in PrivateEventMode]},
            )

        event = PrivateEvent(
            date=day,
            mode=event_mode,
            name=(name or "").strip() or "Private Event",
            price=Decimal(price),
            created_by=actor
        )
        async with self.lock.hold_dates([day]):
            saved = await self.calendar_repo.save_private_event(event)
        logger.info(
            "private_event_set",
            extra={"extra_fields": {"date": day.isoformat(), "mode": event_mode.value, "actor": actor}},
        )
        return saved

    async def remove_private_event(self, day: Union[date, str], actor: Optional[str] = None) -> None:
        day = parse_iso_date(day)
        async with self.lock.hold_dates([day]):
            removed = await self.calendar_repo.delete_private_event(day)
        if not removed:
            raise PrivateEventNotFound(day)
        logger.info(
            "private_event_removed",
            extra={"extra_fields": {"date": day.isoformat(), "actor": actor}},
        )

    async def list_private_events(self) -> List[PrivateEvent]:
        return await self.calendar_repo.find_all_private_events()

    async def get_date_info(self, room_id: int, day: Union[date, str]) -> DateInfo:
        self._check_room(room_id)
        return await self.resolver.date_detail(room_id, parse_iso_date(day))

    async def block_reservation_dates(
        self,
        reservation_id: int,
        status: Union[OverrideStatus, str] = OverrideStatus.BOOKED,
        reason: Optional[str] = None,
        actor: Optional[str] = None
    ) -> List[CalendarOverride]:
        """Pin a reservation on the admin calendar.

        Writes overrides attributed to the reservation on its rooms and nights.
        Cells that already hold an override are left as they are. Cancel,
        mark_failed and delete remove whatever this wrote. Only pending and
        paid reservations can be pinned.
        """
        reservation = await self.reservation_repo.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        if not reservation.is_active():
            raise InvalidStatusTransition(reservation_id, reservation.status.value, "pinned")
        try:
            override_status = OverrideStatus(status)
        except ValueError:
            raise InvalidInput("Invalid status", {"status": status})

        assigned = await self.reservation_repo.find_room_assignment(reservation_id)
        if reservation.private_all:
            rooms = self.settings.room_ids()
        elif assigned:
            rooms = assigned
        else:
            raise InvalidInput(
                "Reservation has no explicit rooms to block",
                {"reservation_id": reservation_id},
            )

        written = []
        async with self.lock.hold(reservation.check_in, reservation.check_out):
            current = await self.reservation_repo.find_by_id(reservation_id)
            if current is None:
                raise ReservationNotFound(reservation_id)
            if not current.is_active():
                raise InvalidStatusTransition(reservation_id, current.status.value, "pinned")
            for room_id in rooms:
                for night in reservation.nights():
                    if await self.calendar_repo.get_override(room_id, night) is not None:
                        continue
                    override = self._new_override(
                        room_id, night, override_status,
                        reason or f"Reservation #{reservation_id}", None, reservation_id, actor
                    )
                    written.append(await self.calendar_repo.save_override(override))
        logger.info(
            "reservation_dates_blocked",
            extra={"extra_fields": {"reservation_id": reservation_id, "overrides_written": len(written)}},
        )
        return written

    @staticmethod
    def _new_override(room_id, day, status, reason, price, reservation_id, actor) -> CalendarOverride:
        return CalendarOverride(
            room_id=room_id,
            date=day,
            status=status,
            reason=reason or "",
            price=price,
            reservation_id=reservation_id,
            created_by=actor
        )

    @staticmethod
    def _log_override(room_id: int, day: date, status: str, actor: Optional[str]) -> None:
        logger.info(
            "calendar_override_set",
            extra={"extra_fields": {
                "room_id": room_id, "date": day.isoformat(), "status": status, "actor": actor,
            }},
        )


class QuoteService:
    """Read-only pricing of a prospective stay"""

    def __init__(self,
                 calendar_repo: CalendarStateRepository,
                 reservation_repo: ReservationRepository,
                 settings: BookingSettings,
                 clock: Callable[[], date] = date.today):
        self.settings = settings
        self.clock = clock
        self.validator = _build_validator(calendar_repo, reservation_repo, settings)
        self.pricing = self.validator.pricing

    async def quote(self, request: HoldRequest) -> Quote:
        """Validate without guest fields and price without committing"""
        validated = await self.validator.validate(request, require_guest=False)
        stay = validated.stay
        check_in = stay.date_range.check_in
        check_out = stay.date_range.check_out

        nightly = await self.pricing.nightly_totals(
            stay.room_ids, stay.rooms_qty, stay.private_all, check_in, check_out
        )
        eligible = check_in - self.clock() >= timedelta(days=self.settings.earlybird_days)
        earlybird_total = None
        if eligible:
            earlybird_total = await self.pricing.estimate_earlybird_total(
                stay.room_ids, stay.rooms_qty, stay.private_all, check_in, check_out
            )

        return Quote(
            check_in=check_in,
            check_out=check_out,
            nights=stay.date_range.nights(),
            total=validated.total,
            deposit=validated.deposit,
            currency=self.settings.currency,
            nightly=nightly,
            earlybird_eligible=eligible,
            earlybird_total=earlybird_total
        )
