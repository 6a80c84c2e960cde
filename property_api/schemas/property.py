"""Property schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field

from property_api.schemas.base import BaseSchema, IDMixin, TimestampMixin
from property_api.models.enums import PropertyType

TIME_24H_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class Coordinates(BaseSchema):
    """Geographic coordinates."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Address(BaseSchema):
    """Postal address of a property."""

    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state_province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    coordinates: Optional[Coordinates] = None


class AddressResponse(BaseSchema):
    """Address as stored; legacy rows may lack parts of it."""

    street: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class Amenities(BaseSchema):
    """Amenity flags, false unless set."""

    wifi: bool = False
    kitchen: bool = False
    ac: bool = False
    heating: bool = False
    tv: bool = False
    washer: bool = False
    dryer: bool = False
    parking: bool = False
    elevator: bool = False
    pool: bool = False


class Policies(BaseSchema):
    """House rules."""

    check_in_time: str = Field("15:00", pattern=TIME_24H_PATTERN)
    check_out_time: str = Field("11:00", pattern=TIME_24H_PATTERN)
    minimum_stay: int = Field(1, ge=1)
    pets_allowed: bool = False
    smoking_allowed: bool = False


class PropertyCreate(BaseSchema):
    """Create a new property."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    property_type: PropertyType
    address: Address

    accommodates: int = Field(..., ge=1)
    bedrooms: int = Field(..., ge=0)
    beds: int = Field(..., ge=0)
    bathrooms: float = Field(..., ge=0)

    amenities: Amenities = Field(default_factory=Amenities)
    policies: Policies = Field(default_factory=Policies)


class PropertyUpdate(BaseSchema):
    """Partial update. Every field is optional and validated like creation.

    ``is_active`` is not accepted: activation status only changes via
    delete (soft) or the admin activate/deactivate actions.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    property_type: Optional[PropertyType] = None
    address: Optional[Address] = None

    accommodates: Optional[int] = Field(None, ge=1)
    bedrooms: Optional[int] = Field(None, ge=0)
    beds: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0)

    amenities: Optional[Amenities] = None
    policies: Optional[Policies] = None

    def proposed_changes(self) -> dict[str, Any]:
        """Explicitly supplied fields, serialized for comparison.

        Nested objects are dumped whole, with their defaults filled in. An
        explicit null only clears ``description``; for other fields it is
        treated as not supplied.
        """
        dumped = self.model_dump(mode="json")
        return {
            field: dumped[field]
            for field in self.model_fields_set
            if dumped[field] is not None or field == "description"
        }


class PropertyResponse(BaseSchema, IDMixin, TimestampMixin):
    """Property response with derived fields."""

    user_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    property_type: PropertyType
    address: Optional[AddressResponse] = None

    accommodates: int
    bedrooms: int
    beds: int
    bathrooms: float

    amenities: Amenities = Field(default_factory=Amenities)
    policies: Policies = Field(default_factory=Policies)
    images: list[str] = Field(default_factory=list)

    is_active: bool = True
    deactivated_at: Optional[datetime] = None

    # Derived
    location: str = ""
    days_since_creation: int = 0


class PropertyListFilters(BaseSchema):
    """Filters accepted by property list queries."""

    user_id: Optional[str] = None
    property_type: Optional[PropertyType] = None
    city: Optional[str] = None
    search: Optional[str] = None
    include_inactive: bool = False
