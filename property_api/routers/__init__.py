"""API Routers for the property listings API."""

from property_api.routers.properties import router as properties_router
from property_api.routers.admin_properties import router as admin_properties_router

__all__ = [
    "properties_router",
    "admin_properties_router",
]
