"""Property persistence.

``PropertyRepository`` is unscoped and reserved for administrative code.
Owner-facing code receives a ``ScopedPropertyRepository`` from
``PropertyRepository.scoped(owner_id)``; every query it issues carries the
owner filter, so rows owned by someone else behave exactly like missing rows.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from property_api.core.database import utcnow
from property_api.core.exceptions import PersistenceError
from property_api.models.enums import PropertyType
from property_api.models.property import Property
from property_api.schemas.base import PaginationParams
from property_api.schemas.property import PropertyListFilters

logger = logging.getLogger(__name__)

ADDRESS_COLUMNS = ("street", "city", "state_province", "postal_code", "country")

SORTABLE_COLUMNS = {
    "created_at": Property.created_at,
    "updated_at": Property.updated_at,
    "name": Property.name,
    "property_type": Property.property_type,
    "accommodates": Property.accommodates,
    "bedrooms": Property.bedrooms,
    "beds": Property.beds,
    "bathrooms": Property.bathrooms,
    "city": Property.city,
    "address.city": Property.city,
    "country": Property.country,
    "address.country": Property.country,
}

GROUPABLE_COLUMNS = {
    "property_type": Property.property_type,
    "city": Property.city,
}


def to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """Map schema-shaped fields (nested address) onto model columns."""
    values = dict(fields)
    if "address" in values:
        address = values.pop("address") or {}
        for column in ADDRESS_COLUMNS:
            values[column] = address.get(column)
        coordinates = address.get("coordinates") or {}
        values["latitude"] = coordinates.get("latitude")
        values["longitude"] = coordinates.get("longitude")
    if values.get("property_type") is not None:
        values["property_type"] = PropertyType(values["property_type"])
    return values


def sort_clause(sort: Optional[str]):
    """Translate ``field:asc|desc`` into an ORDER BY clause.

    Unknown fields fall back to newest first.
    """
    if not sort:
        return Property.created_at.desc()
    field, _, order = sort.partition(":")
    column = SORTABLE_COLUMNS.get(field.strip())
    if column is None:
        logger.debug("Ignoring unsupported sort field %r", field)
        return Property.created_at.desc()
    return column.desc() if order.strip().lower() == "desc" else column.asc()


class PropertyRepository:
    """Unscoped property persistence."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def scoped(self, owner_id: str) -> "ScopedPropertyRepository":
        """Repository restricted to properties owned by ``owner_id``."""
        return ScopedPropertyRepository(self, owner_id)

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error during %s: %s", operation, e)
            raise PersistenceError(
                f"Database error during {operation}",
                details={"operation": operation},
            ) from e

    def _conditions(self, filters: PropertyListFilters) -> list:
        conditions = []
        if not filters.include_inactive:
            conditions.append(Property.is_active.is_(True))
        if filters.user_id:
            conditions.append(Property.user_id == filters.user_id)
        if filters.property_type:
            conditions.append(Property.property_type == filters.property_type)
        if filters.city:
            conditions.append(Property.city.icontains(filters.city, autoescape=True))
        if filters.search:
            conditions.append(
                or_(
                    Property.name.icontains(filters.search, autoescape=True),
                    Property.description.icontains(filters.search, autoescape=True),
                    Property.city.icontains(filters.search, autoescape=True),
                    Property.country.icontains(filters.search, autoescape=True),
                )
            )
        return conditions

    def _by_id(self, property_id: str, owner_id: Optional[str]):
        query = select(Property).where(Property.id == property_id)
        if owner_id is not None:
            query = query.where(Property.user_id == owner_id)
        return query

    async def create(self, owner_id: Optional[str], fields: dict[str, Any]) -> Property:
        """Persist a new active property with no images."""
        now = utcnow()
        prop = Property(
            **to_columns(fields),
            user_id=owner_id,
            images=[],
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        async with self._guard("create"):
            self.db.add(prop)
            await self.db.commit()
            await self.db.refresh(prop)
        return prop

    async def find(
        self,
        filters: PropertyListFilters,
        pagination: PaginationParams,
        sort: Optional[str] = None,
    ) -> tuple[list[Property], int]:
        """Filtered, sorted page of properties plus the unpaginated total."""
        conditions = self._conditions(filters)
        async with self._guard("find"):
            result = await self.db.execute(
                select(Property)
                .where(*conditions)
                .order_by(sort_clause(sort), Property.id)
                .offset(pagination.skip)
                .limit(pagination.limit)
            )
            items = list(result.scalars().all())

            count_result = await self.db.execute(
                select(func.count(Property.id)).where(*conditions)
            )
            total = count_result.scalar() or 0
        return items, total

    async def count_by(self, field: str, filters: PropertyListFilters) -> dict[str, int]:
        """Counts grouped by ``field`` over every row matching ``filters``.

        Rows where the grouped column is NULL are left out.
        """
        column = GROUPABLE_COLUMNS[field]
        async with self._guard(f"count_by_{field}"):
            result = await self.db.execute(
                select(column, func.count(Property.id))
                .where(*self._conditions(filters), column.is_not(None))
                .group_by(column)
            )
            rows = result.all()
        return {
            (key.value if isinstance(key, PropertyType) else key): count
            for key, count in rows
        }

    async def find_by_id(self, property_id: str, owner_id: Optional[str] = None) -> Optional[Property]:
        async with self._guard("find_by_id"):
            result = await self.db.execute(self._by_id(property_id, owner_id))
            return result.scalar_one_or_none()

    async def update(
        self,
        property_id: str,
        fields: dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> Optional[Property]:
        """Apply ``fields`` to one row in a single transaction; returns the new state."""
        values = to_columns(fields)
        values.setdefault("updated_at", utcnow())
        async with self._guard("update"):
            result = await self.db.execute(self._by_id(property_id, owner_id).with_for_update())
            prop = result.scalar_one_or_none()
            if prop is None:
                return None
            for column, value in values.items():
                setattr(prop, column, value)
            await self.db.commit()
            await self.db.refresh(prop)
        return prop

    async def delete(self, property_id: str, owner_id: Optional[str] = None) -> Optional[Property]:
        """Hard delete; returns the removed row."""
        async with self._guard("delete"):
            result = await self.db.execute(self._by_id(property_id, owner_id))
            prop = result.scalar_one_or_none()
            if prop is None:
                return None
            await self.db.delete(prop)
            await self.db.commit()
        return prop

    async def set_active(
        self,
        property_id: str,
        is_active: bool,
        owner_id: Optional[str] = None,
    ) -> Optional[Property]:
        """Toggle activation; deactivation stamps ``deactivated_at``."""
        now = utcnow()
        return await self.update(
            property_id,
            {
                "is_active": is_active,
                "deactivated_at": None if is_active else now,
                "updated_at": now,
            },
            owner_id=owner_id,
        )


class ScopedPropertyRepository:
    """Owner-restricted view over ``PropertyRepository``."""

    def __init__(self, repository: PropertyRepository, owner_id: str):
        if not owner_id:
            raise ValueError("owner_id is required for a scoped repository")
        self._repository = repository
        self.owner_id = owner_id

    def _scope(self, filters: Optional[PropertyListFilters]) -> PropertyListFilters:
        filters = filters or PropertyListFilters()
        return filters.model_copy(update={"user_id": self.owner_id, "include_inactive": False})

    async def create(self, fields: dict[str, Any]) -> Property:
        return await self._repository.create(self.owner_id, fields)

    async def find(
        self,
        filters: Optional[PropertyListFilters],
        pagination: PaginationParams,
        sort: Optional[str] = None,
    ) -> tuple[list[Property], int]:
        return await self._repository.find(self._scope(filters), pagination, sort)

    async def count_by(self, field: str, filters: Optional[PropertyListFilters] = None) -> dict[str, int]:
        return await self._repository.count_by(field, self._scope(filters))

    async def find_by_id(self, property_id: str) -> Optional[Property]:
        return await self._repository.find_by_id(property_id, owner_id=self.owner_id)

    async def update_scoped(self, property_id: str, fields: dict[str, Any]) -> Optional[Property]:
        return await self._repository.update(property_id, fields, owner_id=self.owner_id)

    async def delete_scoped(self, property_id: str) -> Optional[Property]:
        return await self._repository.delete(property_id, owner_id=self.owner_id)

    async def soft_deactivate(self, property_id: str) -> Optional[Property]:
        return await self._repository.set_active(property_id, False, owner_id=self.owner_id)
