"""Domain error taxonomy, mapped to HTTP responses in main.py"""

from typing import Optional


class BookingError(Exception):
    """Base class for errors raised by booking operations"""

    status_code = 400
    code = "booking_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "reason": self.reason}


class ValidationError(BookingError):
    status_code = 400
    code = "validation_error"


class ConflictError(BookingError):
    """Slot rejected or state transition not allowed; `reason` carries the code"""

    status_code = 409
    code = "conflict"

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or f"Conflict: {reason}", reason=reason)


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"


class ExpiredTokenError(BookingError):
    status_code = 410
    code = "expired_token"


class TransientStoreError(BookingError):
    status_code = 503
    code = "store_unavailable"


class ExternalServiceError(BookingError):
    """Calendar or mail provider failure. Core operations log these and carry on."""

    status_code = 502
    code = "external_service_error"


class CalendarRateLimitError(ExternalServiceError):
    code = "calendar_rate_limited"
