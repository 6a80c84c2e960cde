"""AuditLog model."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from property_api.core.database import Base, utcnow
from property_api.models.enums import AuditAction


class AuditLog(Base):
    """Immutable audit log of administrative mutations."""

    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    action: Mapped[AuditAction] = mapped_column(
        SQLEnum(AuditAction),
        nullable=False,
        index=True,
    )

    # Resource being acted upon
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    property_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    # Acting user
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    # Before/after snapshots or diffs
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
