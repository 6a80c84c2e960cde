"""FastAPI dependencies wiring services to the request."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.database import get_db
from property_api.core.security import AuthenticatedUser, get_current_user
from property_api.repositories.property import PropertyRepository
from property_api.services.admin_property import AdminPropertyService
from property_api.services.audit import AuditService
from property_api.services.property import PropertyService
from property_api.services.storage import ImageStore, get_image_store


def get_property_service(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
    image_store: ImageStore = Depends(get_image_store),
) -> PropertyService:
    """Lifecycle service bound to the caller's own properties."""
    repository = PropertyRepository(db).scoped(current_user.user_id)
    return PropertyService(repository, image_store)


def get_admin_property_service(
    db: AsyncSession = Depends(get_db),
    image_store: ImageStore = Depends(get_image_store),
) -> AdminPropertyService:
    return AdminPropertyService(PropertyRepository(db), AuditService(db), image_store)
