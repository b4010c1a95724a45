"""Exception hierarchy shared by the role, user and activity-log stores."""

from __future__ import annotations

from collections.abc import Iterable


class BackofficeError(Exception):
    """Base exception for the back office access layer."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(BackofficeError):
    """Raised on uniqueness or required-field violations."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ConflictError(BackofficeError):
    """Raised when a business rule forbids the operation."""

    def __init__(self, message: str, reason: str | None = None):
        self.reason = reason
        super().__init__(message)


class IntegrityError(BackofficeError):
    """Raised when a role is synced to permissions outside the catalogue."""

    def __init__(self, message: str, unknown_ids: Iterable[int] = ()):
        self.unknown_ids = tuple(sorted(unknown_ids))
        super().__init__(message)


class NotFoundError(BackofficeError):
    """Raised when a referenced record does not exist."""
    pass


class ImmutableRecordError(BackofficeError):
    """Raised when a persisted activity log row is modified."""
    pass
