"""Exception types raised by the notification core."""


class NestPushError(Exception):
    """Base class for notification core errors."""


class StorageError(NestPushError):
    """A token, preference or history store operation failed."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Storage error during {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class DispatchValidationError(NestPushError):
    """Malformed dispatcher request; rejected before any delivery."""
