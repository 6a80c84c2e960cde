"""Data access for the property listings API."""

from property_api.repositories.property import PropertyRepository, ScopedPropertyRepository

__all__ = [
    "PropertyRepository",
    "ScopedPropertyRepository",
]
