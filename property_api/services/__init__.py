"""Services for the property listings API."""

from property_api.services.storage import ImageStore, ImageUpload, get_image_store
from property_api.services.audit import AuditService
from property_api.services.property import PropertyService
from property_api.services.admin_property import AdminPropertyService

__all__ = [
    "ImageStore",
    "ImageUpload",
    "get_image_store",
    "AuditService",
    "PropertyService",
    "AdminPropertyService",
]
