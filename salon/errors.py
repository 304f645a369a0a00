# salon/errors.py
"""
Booking errors.
Raised in the service layer and mapped to HTTP responses in main.py.
"""

SLOT_TAKEN_MESSAGE = "This time slot is already booked. Please select another time."


class BookingError(Exception):
    """Base exception for all booking errors."""

    status_code = 400

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class BookingValidationError(BookingError):
    """Malformed or out-of-range booking input."""

    status_code = 422


class SlotConflictError(BookingError):
    """The slot is taken: validator rejection or a lost uniqueness race."""

    status_code = 409

    def __init__(self, message: str = SLOT_TAKEN_MESSAGE, details=None):
        super().__init__(message, details)


class AppointmentNotFoundError(BookingError):
    status_code = 404

    def __init__(self, appointment_id=None):
        super().__init__("Appointment not found")
        self.appointment_id = appointment_id


class LimitExceededError(BookingError):
    """Daily client booking cap reached."""

    status_code = 429


class PermissionDeniedError(BookingError):
    status_code = 403
