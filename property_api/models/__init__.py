"""SQLAlchemy models for the property listings API."""

from property_api.models.property import Property
from property_api.models.audit import AuditLog

__all__ = [
    "Property",
    "AuditLog",
]
