"""Render booking errors as {"error": {code, message, details, retryable?}}"""
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from domain.exceptions import (
    BookingError, InsufficientCapacity, InvalidInput, InvalidStatusTransition, InvalidTotal,
    PersistenceError, PrivateEventNotFound, PrivateEventOnly, ReservationNotFound, RoomUnavailable
)
from infrastructure.logging import get_logger

logger = get_logger(__name__)

# Checked in order; subclasses before their bases
STATUS_CODES = (
    (ReservationNotFound, 404),
    (PrivateEventNotFound, 404),
    (InvalidInput, 400),
    (PrivateEventOnly, 409),
    (RoomUnavailable, 409),
    (InsufficientCapacity, 409),
    (InvalidStatusTransition, 409),
    (PersistenceError, 503),
    (InvalidTotal, 500),
)


def status_code_for(exc: BookingError) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def error_response(code: str, message: str, details: Any = None) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        }
    }


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        status_code = status_code_for(exc)
        if isinstance(exc, InvalidTotal):
            # Pricing configuration defect; keep amounts out of the response
            logger.error(
                "invalid_total",
                extra={"extra_fields": {"path": request.url.path, "details": exc.details}},
            )
            content = error_response(exc.code, "Unable to price this request")
        else:
            content = exc.to_dict()
        return JSONResponse(status_code=status_code, content=jsonable_encoder(content))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder(error_response(
                "validation_error",
                "Request validation failed",
                {"errors": exc.errors()},
            )),
        )
