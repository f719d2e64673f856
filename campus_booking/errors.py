class BookingError(Exception):
    """Base class for errors raised by the booking service."""


class StorageError(BookingError):
    """The persistence medium failed; not recoverable here."""


class StepValidationError(BookingError):
    """The booking form cannot leave its current step."""


class SignInRequired(StepValidationError):
    """Confirming a booking needs a signed-in user."""
