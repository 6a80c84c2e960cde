"""Property lifecycle: create, list, read, update and delete with images.

A property row, its image files and (for admin flows) its audit trail are
written by independent operations. The row is the source of truth: image
work is best effort per file and never fails the parent operation.
"""

import asyncio
import functools
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Optional, Sequence

from property_api.core.database import utcnow
from property_api.core.exceptions import NotFoundError, PropertyApiError
from property_api.models.enums import ImageDeleteOutcome
from property_api.models.property import Property
from property_api.repositories.property import ScopedPropertyRepository
from property_api.schemas.base import ApiResponse, PaginationMeta, PaginationParams
from property_api.schemas.property import (
    PropertyCreate,
    PropertyListFilters,
    PropertyResponse,
    PropertyUpdate,
)
from property_api.services.storage import ImageStore, ImageUpload

logger = logging.getLogger(__name__)

LOCATION_PLACEHOLDER = "Location not specified"
SUPPORTED_INCLUDES = frozenset({"ical_connections"})


def format_location(prop: Property) -> str:
    """``"City, Country"`` or a placeholder when the address is missing."""
    address = prop.address
    if not address:
        return LOCATION_PLACEHOLDER
    parts = [part for part in (address.get("city"), address.get("country")) if part]
    return ", ".join(parts) if parts else LOCATION_PLACEHOLDER


def days_since(created_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days elapsed since ``created_at``; 0 when unknown."""
    if created_at is None:
        return 0
    now = now or utcnow()
    if created_at.tzinfo is not None:
        created_at = created_at.replace(tzinfo=None)
    return max((now - created_at).days, 0)


def serialize_property(prop: Property, now: Optional[datetime] = None) -> dict[str, Any]:
    """JSON-ready property with derived ``location`` and ``days_since_creation``."""
    response = PropertyResponse.model_validate(prop)
    response.location = format_location(prop)
    response.days_since_creation = days_since(prop.created_at, now)
    return response.model_dump(mode="json")


def changed_fields(current: dict[str, Any], proposed: dict[str, Any]) -> dict[str, Any]:
    """Top-level fields whose serialized value differs from the current one.

    Nested objects are compared whole: replacing ``address`` counts as a
    change even when a single leaf differs.
    """
    return {field: value for field, value in proposed.items() if current.get(field) != value}


def parse_include(include: Optional[str]) -> set[str]:
    """Recognized relation expansions from a comma-separated list."""
    if not include:
        return set()
    tokens = {token.strip() for token in include.split(",") if token.strip()}
    unknown = tokens - SUPPORTED_INCLUDES
    if unknown:
        logger.debug("Ignoring unknown include tokens: %s", ", ".join(sorted(unknown)))
    return tokens & SUPPORTED_INCLUDES


async def save_images(
    image_store: ImageStore,
    property_id: str,
    uploads: Sequence[ImageUpload],
) -> tuple[list[str], list[dict[str, Any]]]:
    """Save uploads concurrently; references come back in input order.

    Returns (references, failures). A failed upload is logged and left out.
    """
    if not uploads:
        return [], []

    results = await asyncio.gather(
        *(image_store.save(property_id, upload) for upload in uploads),
        return_exceptions=True,
    )

    references: list[str] = []
    failures: list[dict[str, Any]] = []
    for upload, result in zip(uploads, results):
        if isinstance(result, Exception):
            logger.warning(
                "Image %r for property %s was not stored: %s",
                upload.filename, property_id, result,
                extra={"property_id": property_id},
            )
            failures.append({"filename": upload.filename, "error": str(result)})
        elif isinstance(result, BaseException):
            raise result
        else:
            references.append(result)
    return references, failures


async def purge_images(image_store: ImageStore, prop: Property) -> dict[str, Any]:
    """Best-effort removal of every image of a deleted property and its namespace."""
    outcomes = await asyncio.gather(*(image_store.delete(reference) for reference in prop.images or []))
    for reference, outcome in zip(prop.images or [], outcomes):
        if outcome is ImageDeleteOutcome.FAILED:
            logger.warning(
                "Image %s of deleted property %s could not be removed",
                reference, prop.id,
                extra={"property_id": prop.id, "reference": reference, "outcome": outcome.value},
            )
    namespace_outcome = await image_store.delete_namespace(prop.id)

    counts = Counter(outcome.value for outcome in outcomes)
    return {
        "deleted": counts[ImageDeleteOutcome.DELETED.value],
        "not_found": counts[ImageDeleteOutcome.NOT_FOUND.value],
        "failed": counts[ImageDeleteOutcome.FAILED.value],
        "namespace": namespace_outcome.value,
    }


def pagination_message(count: int) -> str:
    if count:
        return f"Successfully retrieved {count} properties"
    return "No properties found matching the criteria"


def property_not_found(property_id: str) -> NotFoundError:
    return NotFoundError(
        f"Property with ID {property_id} not found",
        details={"property_id": property_id},
    )


def returns_envelope(failure_message: str):
    """Render any failure of the wrapped operation as a failed ``ApiResponse``."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ApiResponse:
            try:
                return await func(*args, **kwargs)
            except PropertyApiError as e:
                logger.info("%s: %s", failure_message, e.message)
                return ApiResponse.fail(
                    error=e.code,
                    message=f"{failure_message}: {e.message}",
                    details=e.details,
                )
            except Exception as e:
                logger.exception(failure_message)
                return ApiResponse.fail(
                    error=PropertyApiError.code,
                    message=failure_message,
                    details={"reason": str(e)},
                )

        return wrapper

    return decorator


class PropertyService:
    """Owner-scoped property lifecycle.

    Never raises: every outcome is an ``ApiResponse``.
    """

    def __init__(self, repository: ScopedPropertyRepository, image_store: ImageStore):
        self.repository = repository
        self.image_store = image_store

    @returns_envelope("Failed to create property")
    async def create(
        self,
        data: PropertyCreate,
        images: Sequence[ImageUpload] = (),
    ) -> ApiResponse:
        """Persist the property, then attach whichever images store successfully."""
        prop = await self.repository.create(data.model_dump(mode="json"))

        references, failures = await save_images(self.image_store, prop.id, images)
        if references:
            try:
                updated = await self.repository.update_scoped(prop.id, {"images": references})
            except PropertyApiError:
                await self._discard_created(prop.id, references)
                raise
            if updated is None:
                await self._discard_created(prop.id, references)
                raise property_not_found(prop.id)
            prop = updated

        message = f"Property created successfully with {len(references)} image(s)"
        if failures:
            message += f"; {len(failures)} image(s) failed to upload"

        return ApiResponse.ok(
            data={
                "property": serialize_property(prop),
                "meta": {
                    "images_count": len(references),
                    "images_failed": failures,
                },
            },
            message=message,
        )

    async def _discard_created(self, property_id: str, references: Sequence[str]) -> None:
        """Undo a create whose image write-back failed: files first, then the row."""
        await asyncio.gather(*(self.image_store.delete(reference) for reference in references))
        await self.image_store.delete_namespace(property_id)
        try:
            await self.repository.delete_scoped(property_id)
        except PropertyApiError as e:
            logger.error(
                "Property %s could not be removed after a failed create: %s", property_id, e.message,
                extra={"property_id": property_id},
            )

    @returns_envelope("Failed to retrieve properties")
    async def list_properties(
        self,
        filters: Optional[PropertyListFilters] = None,
        pagination: Optional[PaginationParams] = None,
        sort: Optional[str] = None,
    ) -> ApiResponse:
        """One page of the caller's active properties plus scope-wide summaries."""
        pagination = pagination or PaginationParams()
        items, total = await self.repository.find(filters, pagination, sort)

        # Summaries cover the caller's whole active set, not the page or filters
        by_type = await self.repository.count_by("property_type")
        by_city = await self.repository.count_by("city")

        now = utcnow()
        return ApiResponse.ok(
            data={
                "properties": [serialize_property(prop, now) for prop in items],
                "meta": PaginationMeta.build(total, pagination).model_dump(),
                "summary": {
                    "by_property_type": by_type,
                    "by_city": by_city,
                },
            },
            message=pagination_message(len(items)),
        )

    @returns_envelope("Failed to retrieve property")
    async def get(self, property_id: str, include: Optional[str] = None) -> ApiResponse:
        # Relation expansions are accepted but have nothing to load yet
        parse_include(include)

        prop = await self.repository.find_by_id(property_id)
        if prop is None:
            raise property_not_found(property_id)

        return ApiResponse.ok(
            data={"property": serialize_property(prop)},
            message="Property retrieved successfully",
        )

    @returns_envelope("Failed to update property")
    async def update(
        self,
        property_id: str,
        data: Optional[PropertyUpdate] = None,
        images: Sequence[ImageUpload] = (),
        delete_images: Sequence[str] = (),
    ) -> ApiResponse:
        """Update scalar fields and the image list in one row update.

        Only references that belong to the property are removed. Their files
        are deleted once the row no longer points at them; newly stored files
        are removed again if the row update fails.
        """
        current = await self.repository.find_by_id(property_id)
        if current is None:
            raise property_not_found(property_id)

        proposed = (data or PropertyUpdate()).proposed_changes()
        changes = changed_fields(serialize_property(current), proposed)

        image_list = list(current.images or [])
        removed: list[str] = []
        for reference in dict.fromkeys(delete_images):
            if reference not in image_list:
                logger.warning(
                    "Ignoring delete of %s: not an image of property %s", reference, property_id,
                    extra={"property_id": property_id, "reference": reference},
                )
                continue
            image_list.remove(reference)
            removed.append(reference)

        added, failures = await save_images(self.image_store, property_id, images)
        image_list.extend(added)

        updated_fields = list(changes)
        values = dict(changes)
        if removed or added:
            updated_fields.append("images")
            values["images"] = image_list
        values["updated_at"] = utcnow()

        try:
            prop = await self.repository.update_scoped(property_id, values)
        except PropertyApiError:
            await asyncio.gather(*(self.image_store.delete(reference) for reference in added))
            raise
        if prop is None:
            await asyncio.gather(*(self.image_store.delete(reference) for reference in added))
            raise property_not_found(property_id)

        outcomes = await asyncio.gather(*(self.image_store.delete(reference) for reference in removed))
        not_removed = [
            reference
            for reference, outcome in zip(removed, outcomes)
            if outcome is ImageDeleteOutcome.FAILED
        ]

        changes_count = len(updated_fields)
        if changes_count:
            message = f"Property updated successfully with {changes_count} change(s)"
        else:
            message = "Property updated successfully; no changes detected"

        return ApiResponse.ok(
            data={
                "property": serialize_property(prop),
                "meta": {
                    "updated_fields": updated_fields,
                    "changes_count": changes_count,
                    "images_added": len(added),
                    "images_removed": len(removed),
                    "images_failed": failures,
                    "images_not_purged": not_removed,
                },
            },
            message=message,
        )

    @returns_envelope("Failed to delete property")
    async def delete(self, property_id: str, preserve_history: bool = False) -> ApiResponse:
        """Soft-deactivate (images kept) or hard delete (images purged)."""
        if preserve_history:
            prop = await self.repository.soft_deactivate(property_id)
            if prop is None:
                raise property_not_found(property_id)
            return ApiResponse.ok(
                data={
                    "property": serialize_property(prop),
                    "meta": {"preserve_history": True, "images_retained": len(prop.images or [])},
                },
                message="Property deactivated successfully; history preserved",
            )

        prop = await self.repository.delete_scoped(property_id)
        if prop is None:
            raise property_not_found(property_id)

        cleanup = await purge_images(self.image_store, prop)
        return ApiResponse.ok(
            data={
                "id": prop.id,
                "meta": {"preserve_history": False, "images": cleanup},
            },
            message="Property deleted successfully",
        )
