"""
Maps engine errors onto HTTP responses.

Rejections carry their reason code; storage failures become a generic
"try again" so driver internals never leak to clients.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from service_booking.core import errors
from service_booking.core.logging import get_logger

logger = get_logger(__name__)

STATUS_CODES = (
    (errors.ConflictError, 409),
    (errors.IllegalTransitionError, 409),
    (errors.ValidationError, 422),
    (errors.IntegrityError, 404),
    (errors.StorageError, 503),
)


def status_for(exc: errors.BookingEngineError) -> int:
    for error_class, status_code in STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


async def booking_engine_error_handler(request: Request, exc: errors.BookingEngineError) -> JSONResponse:
    status_code = status_for(exc)
    if isinstance(exc, errors.StorageError) or status_code == 500:
        logger.error("engine_failure", error=exc.code, reason=exc.reason)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.code, "reason": "try_again", "message": "Temporary failure, please try again"},
            headers={"Retry-After": "1"} if status_code == 503 else None,
        )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(errors.BookingEngineError, booking_engine_error_handler)
