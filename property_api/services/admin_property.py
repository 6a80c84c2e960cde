"""Admin property management: unscoped lifecycle, always audited.

Unlike ``PropertyService`` this service raises ``NotFoundError`` and other
``PropertyApiError`` subclasses; the API layer renders them into the same
response envelope.
"""

import logging
from typing import Optional

from property_api.core.exceptions import AuditWriteError
from property_api.models.property import Property
from property_api.repositories.property import PropertyRepository
from property_api.schemas.base import ApiResponse, PaginationMeta, PaginationParams
from property_api.schemas.property import PropertyListFilters, PropertyUpdate
from property_api.services.audit import AuditService
from property_api.services.property import (
    changed_fields,
    pagination_message,
    property_not_found,
    purge_images,
    serialize_property,
)
from property_api.services.storage import ImageStore

logger = logging.getLogger(__name__)


class AdminPropertyService:
    """Property operations for administrators."""

    def __init__(
        self,
        repository: PropertyRepository,
        audit: AuditService,
        image_store: ImageStore,
    ):
        self.repository = repository
        self.audit = audit
        self.image_store = image_store

    async def _load(self, property_id: str) -> Property:
        prop = await self.repository.find_by_id(property_id)
        if prop is None:
            raise property_not_found(property_id)
        return prop

    async def list_properties(
        self,
        filters: Optional[PropertyListFilters] = None,
        pagination: Optional[PaginationParams] = None,
        sort: Optional[str] = None,
    ) -> ApiResponse:
        """Every owner's properties, optionally including deactivated ones."""
        filters = filters or PropertyListFilters()
        pagination = pagination or PaginationParams()
        items, total = await self.repository.find(filters, pagination, sort)

        return ApiResponse.ok(
            data={
                "properties": [serialize_property(prop) for prop in items],
                "meta": PaginationMeta.build(total, pagination).model_dump(),
            },
            message=pagination_message(len(items)),
        )

    async def get(self, property_id: str) -> ApiResponse:
        prop = await self._load(property_id)
        return ApiResponse.ok(
            data={"property": serialize_property(prop)},
            message="Property retrieved successfully",
        )

    async def update(self, property_id: str, data: PropertyUpdate, admin_id: str) -> ApiResponse:
        """Audit the pre-state, then apply the changed fields."""
        prop = await self._load(property_id)
        before = serialize_property(prop)
        changes = changed_fields(before, data.proposed_changes())

        await self._record(
            self.audit.log_property_updated(property_id, admin_id, before=before, changes=changes)
        )

        updated = await self.repository.update(property_id, changes)
        if updated is None:
            raise property_not_found(property_id)

        return ApiResponse.ok(
            data={
                "property": serialize_property(updated),
                "meta": {"updated_fields": list(changes), "changes_count": len(changes)},
            },
            message="Property updated successfully",
        )

    async def delete(self, property_id: str, admin_id: str) -> ApiResponse:
        """Audit the full entity, hard delete it, then purge its images."""
        prop = await self._load(property_id)

        await self._record(
            self.audit.log_property_deleted(property_id, admin_id, snapshot=serialize_property(prop))
        )

        deleted = await self.repository.delete(property_id)
        if deleted is None:
            raise property_not_found(property_id)

        cleanup = await purge_images(self.image_store, deleted)
        return ApiResponse.ok(
            data={"id": property_id, "meta": {"images": cleanup}},
            message="Property deleted successfully",
        )

    async def set_active_status(self, property_id: str, is_active: bool, admin_id: str) -> ApiResponse:
        prop = await self._load(property_id)

        await self._record(
            self.audit.log_property_status_changed(
                property_id, admin_id, was_active=prop.is_active, is_active=is_active
            )
        )

        updated = await self.repository.set_active(property_id, is_active)
        if updated is None:
            raise property_not_found(property_id)

        return ApiResponse.ok(
            data={"property": serialize_property(updated)},
            message=f"Property {'activated' if is_active else 'deactivated'} successfully",
        )

    async def activate(self, property_id: str, admin_id: str) -> ApiResponse:
        return await self.set_active_status(property_id, True, admin_id)

    async def deactivate(self, property_id: str, admin_id: str) -> ApiResponse:
        return await self.set_active_status(property_id, False, admin_id)

    async def _record(self, audit_write) -> None:
        """Await an audit write; a failed write aborts the admin mutation."""
        try:
            await audit_write
        except AuditWriteError:
            await self.repository.db.rollback()
            logger.error("Admin mutation aborted: audit entry could not be recorded")
            raise
