"""Error types raised by the reminder services."""


class ReminderError(Exception):
    """Base class for reminder service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReminderError):
    """Missing or malformed input. Never retried."""

    status_code = 400


class NotFoundError(ReminderError):
    """The targeted record id does not resolve."""

    status_code = 404


class ExternalServiceError(ReminderError):
    """A collaborator (text generation, email) failed or timed out."""

    status_code = 502


class PersistenceError(ReminderError):
    """The reminder store could not complete an operation."""

    status_code = 503
