"""Error kinds raised by the booking engine.

Each class carries a stable ``code`` so the HTTP layer can choose a status without
reading the message text.
"""
from typing import Optional


class BookingError(Exception):
    code = "booking_error"
    status = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(BookingError, ValueError):
    code = "invalid_request"
    status = 400


class ConflictError(BookingError):
    code = "slot_already_booked"
    status = 409


class NotFoundError(BookingError):
    code = "not_found"
    status = 404


class StorageError(BookingError):
    code = "storage_unavailable"
    status = 500
