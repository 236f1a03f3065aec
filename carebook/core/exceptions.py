"""Custom application exceptions."""

from enum import Enum


class ErrorKind(str, Enum):
    """Outcome kinds reported by the scheduling engine."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_STATUS_VALUE = "invalid_status_value"
    INVALID_TRANSITION = "invalid_transition"
    NOT_RESCHEDULABLE = "not_reschedulable"
    PAST_DATE = "past_date"
    NO_AVAILABILITY_WINDOW = "no_availability_window"
    DOUBLE_BOOKED = "double_booked"
    INTERNAL = "internal"


class AppException(Exception):
    """Base application exception."""

    kind: ErrorKind | None = None

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthenticated request exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class RateLimitException(AppException):
    """Rate limit exceeded exception."""

    def __init__(self, message: str = "Rate limit exceeded"):
        """Initialize with 429 status code."""
        super().__init__(message, status_code=429)


# Scheduling outcomes


class AppointmentNotFoundException(NotFoundException):
    """Appointment id does not resolve."""

    def __init__(self, message: str = "Appointment not found"):
        super().__init__(message)


class PermissionDeniedException(ForbiddenException):
    """Actor may not perform the requested mutation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class InvalidStatusValueException(ValidationException):
    """Requested status is not a recognized appointment status."""

    kind = ErrorKind.INVALID_STATUS_VALUE

    def __init__(self, message: str = "Invalid appointment status"):
        super().__init__(message)


class InvalidTransitionException(ConflictException):
    """Current to target status pair is not allowed."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, message: str = "Status transition not allowed"):
        super().__init__(message)


class NotReschedulableException(ConflictException):
    """Date change requested on a closed appointment."""

    kind = ErrorKind.NOT_RESCHEDULABLE

    def __init__(self, message: str = "Appointment can no longer be rescheduled"):
        super().__init__(message)


class PastDateException(BadRequestException):
    """Proposed start time is not in the future."""

    kind = ErrorKind.PAST_DATE

    def __init__(self, message: str = "Appointment time must be in the future"):
        super().__init__(message)


class NoAvailabilityWindowException(BadRequestException):
    """Doctor has no enabled window covering the proposed time."""

    kind = ErrorKind.NO_AVAILABILITY_WINDOW

    def __init__(self, message: str = "Doctor is not available at this time"):
        super().__init__(message)


class DoubleBookedException(ConflictException):
    """Doctor already has an active appointment overlapping the interval."""

    kind = ErrorKind.DOUBLE_BOOKED

    def __init__(self, message: str = "Doctor already has an appointment at this time"):
        super().__init__(message)


_EXCEPTIONS_BY_KIND: dict[ErrorKind, type[AppException]] = {
    ErrorKind.NOT_FOUND: AppointmentNotFoundException,
    ErrorKind.UNAUTHORIZED: PermissionDeniedException,
    ErrorKind.INVALID_STATUS_VALUE: InvalidStatusValueException,
    ErrorKind.INVALID_TRANSITION: InvalidTransitionException,
    ErrorKind.NOT_RESCHEDULABLE: NotReschedulableException,
    ErrorKind.PAST_DATE: PastDateException,
    ErrorKind.NO_AVAILABILITY_WINDOW: NoAvailabilityWindowException,
    ErrorKind.DOUBLE_BOOKED: DoubleBookedException,
}


def exception_for(kind: ErrorKind, message: str | None = None) -> AppException:
    """
    Build the exception that reports a scheduling outcome.

    Args:
        kind: Outcome kind
        message: Optional message overriding the default

    Returns:
        Exception instance ready to raise
    """
    exc_class = _EXCEPTIONS_BY_KIND.get(kind)
    if exc_class is None:
        return AppException(message or "An unexpected error occurred")
    if message:
        return exc_class(message)  # type: ignore[call-arg]
    return exc_class()  # type: ignore[call-arg]
