"""Exception hierarchy for the property listings API."""

from typing import Any, Optional


class PropertyApiError(Exception):
    """Base exception for all property API errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(PropertyApiError):
    """Raised when a lookup misses, including rows outside the caller's scope."""

    code = "NOT_FOUND"
    status_code = 404


class PropertyValidationError(PropertyApiError):
    """Raised when request input is malformed."""

    code = "VALIDATION_ERROR"
    status_code = 422


class StorageWriteError(PropertyApiError):
    """Raised when an image cannot be written to the image store."""

    code = "STORAGE_WRITE_ERROR"


class StorageDeleteError(PropertyApiError):
    """Raised when an image cannot be removed from the image store."""

    code = "STORAGE_DELETE_ERROR"


class PersistenceError(PropertyApiError):
    """Raised when the database rejects or fails an operation."""

    code = "PERSISTENCE_ERROR"


class AuditWriteError(PersistenceError):
    """Raised when an audit entry cannot be recorded."""

    code = "AUDIT_WRITE_ERROR"
