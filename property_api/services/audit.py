"""Audit logging service."""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.exceptions import AuditWriteError
from property_api.models.audit import AuditLog
from property_api.models.enums import AuditAction

logger = logging.getLogger(__name__)

PROPERTY_ENTITY = "Property"


class AuditService:
    """Service for creating audit log entries.

    Entries are flushed into the caller's session, so they commit or roll
    back together with the mutation they describe.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        user_id: Optional[str] = None,
        property_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            property_id=property_id,
            details=details or {},
        )
        try:
            self.db.add(entry)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Audit write failed for %s %s: %s", action.value, entity_id, e)
            raise AuditWriteError(
                "Failed to record audit entry",
                details={"action": action.value, "entity_id": entity_id},
            ) from e
        return entry

    async def log_property_updated(
        self,
        property_id: str,
        admin_id: str,
        before: dict[str, Any],
        changes: dict[str, Any],
    ) -> AuditLog:
        """Log an admin property update."""
        return await self.log(
            action=AuditAction.UPDATE,
            entity_type=PROPERTY_ENTITY,
            entity_id=property_id,
            user_id=admin_id,
            property_id=property_id,
            details={"before": before, "changes": changes},
        )

    async def log_property_deleted(
        self,
        property_id: str,
        admin_id: str,
        snapshot: dict[str, Any],
    ) -> AuditLog:
        """Log an admin property deletion with the full entity."""
        return await self.log(
            action=AuditAction.DELETE,
            entity_type=PROPERTY_ENTITY,
            entity_id=property_id,
            user_id=admin_id,
            property_id=property_id,
            details={"deleted_property": snapshot},
        )

    async def log_property_status_changed(
        self,
        property_id: str,
        admin_id: str,
        was_active: bool,
        is_active: bool,
    ) -> AuditLog:
        """Log an admin activate/deactivate."""
        return await self.log(
            action=AuditAction.ACTIVATE if is_active else AuditAction.DEACTIVATE,
            entity_type=PROPERTY_ENTITY,
            entity_id=property_id,
            user_id=admin_id,
            property_id=property_id,
            details={
                "before": {"is_active": was_active},
                "after": {"is_active": is_active},
            },
        )
