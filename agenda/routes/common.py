from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from agenda.core.errors import (
    BookingError,
    BookingValidationError,
    NotFoundError,
    SlotTakenError,
    TransientUnavailableError,
)
from agenda.database import ensure_booking_schema

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

_STATUS_BY_ERROR = (
    (SlotTakenError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (BookingValidationError, status.HTTP_400_BAD_REQUEST),
    (TransientUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: BookingError) -> HTTPException:
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return HTTPException(status_code=status_code, detail=exc.as_detail())


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
