"""Enumeration types for the property listings domain model."""

from enum import Enum


class PropertyType(str, Enum):
    """Type of property."""
    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    ROOM = "ROOM"
    HOTEL = "HOTEL"
    CABIN = "CABIN"
    VILLA = "VILLA"


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ACTIVATE = "ACTIVATE"
    DEACTIVATE = "DEACTIVATE"


class ImageDeleteOutcome(str, Enum):
    """Result of a best-effort image removal."""
    DELETED = "deleted"
    NOT_FOUND = "not_found"  # already absent, not an error
    FAILED = "failed"
