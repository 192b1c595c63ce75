"""Booking settings loader

Settings are read once at startup from BOOKING_* environment variables and
passed explicitly to each component.
"""
import json
import os
from typing import Any, Dict, Mapping, Optional

from domain.settings import BookingSettings, RoomConfig

_TRUE_VALUES = {"1", "true", "yes", "on"}

# env var -> BookingSettings field
_SCALAR_FIELDS = {
    "BOOKING_SETTINGS_VERSION": "version",
    "BOOKING_TOTAL_ROOMS": "total_rooms",
    "BOOKING_DEFAULT_ROOM_PRICE": "default_room_price",
    "BOOKING_DEPOSIT_PERCENT": "deposit_percent",
    "BOOKING_EARLYBIRD_DAYS": "earlybird_days",
    "BOOKING_CURRENCY": "currency",
    "BOOKING_MIN_AGE": "min_age",
}

_FLAG_FIELDS = {
    "BOOKING_ROOMS_ENABLED": "rooms_enabled",
    "BOOKING_ALLOW_PRIVATE_ALL": "allow_private_all",
    "BOOKING_AGE_FIELD_ENABLED": "age_field_enabled",
}


def _parse_flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def load_settings(env: Optional[Mapping[str, str]] = None) -> BookingSettings:
    """Build a BookingSettings snapshot from the environment.

    Unset variables keep the model defaults. BOOKING_ROOMS is a JSON list of
    objects with name, price and earlybird_price; entry 0 describes room 1.
    """
    env = os.environ if env is None else env
    values: Dict[str, Any] = {}

    for var, field in _SCALAR_FIELDS.items():
        raw = env.get(var)
        if raw is not None and raw.strip() != "":
            values[field] = raw.strip()

    for var, field in _FLAG_FIELDS.items():
        raw = env.get(var)
        if raw is not None and raw.strip() != "":
            values[field] = _parse_flag(raw)

    rooms_raw = env.get("BOOKING_ROOMS")
    if rooms_raw:
        try:
            rooms = json.loads(rooms_raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"BOOKING_ROOMS is not valid JSON: {e}")
        if not isinstance(rooms, list):
            raise ValueError("BOOKING_ROOMS must be a JSON list")
        values["rooms"] = [RoomConfig(**(room or {})) for room in rooms]

    return BookingSettings(**values)
