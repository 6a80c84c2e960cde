"""Base schema utilities."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class TimestampMixin(BaseModel):
    """Mixin for created_at/updated_at timestamps."""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IDMixin(BaseModel):
    """Mixin for string id field."""

    id: str


MAX_PAGE = 1_000_000
MAX_LIMIT = 100


def coerce_positive_int(value: Any, default: int, maximum: int) -> int:
    """Parse a query value as a positive int capped at ``maximum``.

    Non-numeric and non-positive values fall back to ``default``.
    """
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if number <= 0:
        return default
    return min(number, maximum)


class PaginationParams(BaseSchema):
    """Offset pagination input.

    Non-numeric values fall back to the defaults; oversized ones are capped.
    """

    page: int = 1
    limit: int = 10

    @field_validator("page", mode="before")
    @classmethod
    def coerce_page(cls, value: Any) -> int:
        return coerce_positive_int(value, 1, MAX_PAGE)

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, value: Any) -> int:
        return coerce_positive_int(value, 10, MAX_LIMIT)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(BaseSchema):
    """Pagination block returned with list responses."""

    total: int
    page: int
    limit: int
    pages: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, total: int, pagination: PaginationParams) -> "PaginationMeta":
        pages = -(-total // pagination.limit) if total else 0
        return cls(
            total=total,
            page=pagination.page,
            limit=pagination.limit,
            pages=pages,
            has_next_page=pagination.page * pagination.limit < total,
            has_previous_page=pagination.page > 1,
        )


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint."""

    success: bool
    message: str
    data: Optional[Any] = None
    error: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, data: Any = None, message: str = "OK") -> "ApiResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        error: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> "ApiResponse":
        return cls(success=False, error=error, message=message, details=details or {})

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict; optional keys are omitted when unset."""
        payload: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        if self.details is not None:
            payload["details"] = self.details
        return payload
