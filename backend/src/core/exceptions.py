"""
Domain exceptions for the booking core.

Services raise these instead of HTTP errors so the same logic can run from
routes, scripts and tests. `main.py` maps each one to an HTTP response using
`status_code` and `error_type`.
"""


class BookingError(Exception):
    """Base class for all booking-domain failures."""

    status_code = 500
    error_type = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError):
    """Malformed or missing input (missing service, past start time, wrong branch...)."""

    status_code = 400
    error_type = "validation_error"


class AuthorizationError(BookingError):
    """Caller lacks the staff role required for the operation."""

    status_code = 403
    error_type = "authorization_error"


class NotFoundError(BookingError):
    """Referenced appointment, service, employee or customer does not exist."""

    status_code = 404
    error_type = "not_found"


class ConflictError(BookingError):
    """No eligible resource, or the resource is already booked for the interval."""

    status_code = 409
    error_type = "conflict"


class StateError(BookingError):
    """Transition not allowed from the appointment's current status."""

    status_code = 409
    error_type = "state_error"


class ExternalServiceError(BookingError):
    """Payment gateway call failed."""

    status_code = 502
    error_type = "external_service_error"
