"""Property model."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Enum as SQLEnum, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from property_api.core.database import Base, utcnow
from property_api.models.enums import PropertyType

JSONType = JSON().with_variant(JSONB, "postgresql")


class Property(Base):
    """A rentable property listing owned by a user."""

    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    # Nullable only for legacy rows created by admins
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        nullable=False,
        index=True,
    )

    # Address
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    state_province: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Capacity
    accommodates: Mapped[int] = mapped_column(Integer, nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    beds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    amenities: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    policies: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # Ordered image references, upload order
    images: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("accommodates >= 1", name="ck_property_accommodates"),
        CheckConstraint(
            "bedrooms >= 0 AND beds >= 0 AND bathrooms >= 0",
            name="ck_property_capacity",
        ),
    )

    @property
    def address(self) -> Optional[dict[str, Any]]:
        """Nested address view over the flattened columns."""
        if self.city is None and self.country is None and self.street is None:
            return None
        coordinates = None
        if self.latitude is not None and self.longitude is not None:
            coordinates = {"latitude": self.latitude, "longitude": self.longitude}
        return {
            "street": self.street,
            "city": self.city,
            "state_province": self.state_province,
            "postal_code": self.postal_code,
            "country": self.country,
            "coordinates": coordinates,
        }
