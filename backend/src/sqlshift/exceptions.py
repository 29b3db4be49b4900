"""Custom exceptions for SQLShift."""

from typing import Optional
from uuid import UUID


class SQLShiftError(Exception):
    """Base class for all SQLShift errors."""


class AuthRequiredError(SQLShiftError):
    """Raised when a user-scoped operation is invoked without a user."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFoundError(SQLShiftError):
    """Raised when a referenced record does not exist or belongs to another user."""

    def __init__(self, entity: str, entity_id: UUID | str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found"
        if entity_id is not None:
            message += f": {entity_id}"
        super().__init__(message)


class ValidationError(SQLShiftError):
    """Raised when input is rejected before any record is written."""


class UnsupportedFileTypeError(ValidationError):
    """Raised when an uploaded file has an extension that cannot be converted."""

    def __init__(self, file_name: str, supported: list[str]):
        self.file_name = file_name
        self.supported = supported
        super().__init__(
            f"Unsupported file type: {file_name} "
            f"(supported: {', '.join(supported)})"
        )


class InvalidTransitionError(ValidationError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, entity: str, current: str, action: str):
        self.entity = entity
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} {entity} in state '{current}'")


class ConversionFailedError(SQLShiftError):
    """
    Raised by converters (or the conversion runner) when a conversion fails.

    The lifecycle controller recovers this into a failed FileRecord; it is never
    surfaced to API callers as a fatal error.
    """

    def __init__(self, message: str, timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(message)


class StorageError(SQLShiftError):
    """Raised when the persistence layer is unreachable or rejects a write."""

    def __init__(self, message: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(message)


class StaleWriteError(StorageError):
    """Raised when a compare-and-swap write loses to a concurrent writer."""

    def __init__(self, entity_id: UUID, expected_version: Optional[int] = None):
        self.entity_id = entity_id
        self.expected_version = expected_version
        message = f"Record {entity_id} was modified concurrently"
        if expected_version is not None:
            message += f" (expected version {expected_version})"
        super().__init__(message)
