"""Domain errors raised by the scheduling core.

Routes translate these into HTTP responses; ``SLOT_TAKEN`` is kept distinct
from every other failure so callers can re-offer fresh slots.
"""

VALIDATION_ERROR = 'VALIDATION_ERROR'
NOT_FOUND = 'NOT_FOUND'
SLOT_TAKEN = 'SLOT_TAKEN'
TRANSIENT_UNAVAILABLE = 'TRANSIENT_UNAVAILABLE'
DELIVERY_FAILED = 'DELIVERY_FAILED'


class BookingError(Exception):
    code = 'BOOKING_ERROR'

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_detail(self) -> dict:
        return {'code': self.code, 'message': self.message}


class BookingValidationError(BookingError):
    code = VALIDATION_ERROR


class NotFoundError(BookingError):
    code = NOT_FOUND


class SlotTakenError(BookingError):
    code = SLOT_TAKEN

    def __init__(self, message: str = 'The selected time is no longer available.') -> None:
        super().__init__(message)


class TransientUnavailableError(BookingError):
    code = TRANSIENT_UNAVAILABLE


class DeliveryFailedError(BookingError):
    code = DELIVERY_FAILED
