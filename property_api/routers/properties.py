"""Owner-scoped properties router."""

import json
from pathlib import PurePath
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from property_api.core.config import Settings, get_settings
from property_api.core.exceptions import PropertyValidationError
from property_api.core.responses import envelope_response
from property_api.deps import get_property_service
from property_api.models.enums import PropertyType
from property_api.schemas.base import PaginationParams
from property_api.schemas.property import PropertyCreate, PropertyListFilters, PropertyUpdate
from property_api.services.property import PropertyService
from property_api.services.storage import ImageUpload

router = APIRouter(prefix="/properties", tags=["properties"])


def parse_model(model, raw: Optional[str], field: str):
    """Validate a JSON form field against ``model``."""
    try:
        return model.model_validate_json(raw or "{}")
    except ValidationError as e:
        raise PropertyValidationError(
            f"Invalid '{field}' payload",
            details={"errors": json.loads(e.json(include_url=False))},
        ) from e


def parse_delete_images(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PropertyValidationError("deleteImages must be a JSON array of image references") from e
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PropertyValidationError("deleteImages must be a JSON array of image references")
    return value


async def read_uploads(files: Optional[List[UploadFile]], settings: Settings) -> list[ImageUpload]:
    """Enforce the upload filter and buffer the files in memory."""
    files = [f for f in files or [] if f.filename]
    if len(files) > settings.max_images_per_request:
        raise PropertyValidationError(
            f"At most {settings.max_images_per_request} images may be uploaded per request",
            details={"received": len(files)},
        )

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    uploads = []
    for file in files:
        ext = PurePath(file.filename).suffix.lower().lstrip(".")
        if ext not in settings.image_extensions:
            raise PropertyValidationError(
                "Only image files are allowed!",
                details={"filename": file.filename, "allowed": sorted(settings.image_extensions)},
            )
        content = await file.read()
        if len(content) > max_bytes:
            raise PropertyValidationError(
                f"File exceeds maximum of {settings.max_upload_size_mb}MB",
                details={"filename": file.filename},
            )
        uploads.append(ImageUpload(filename=file.filename, content=content))
    return uploads


@router.get("")
async def list_properties(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    property_type: Optional[PropertyType] = Query(None),
    city: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="field:asc|desc"),
    service: PropertyService = Depends(get_property_service),
) -> JSONResponse:
    """List the caller's active properties with pagination, filters and summaries."""
    result = await service.list_properties(
        filters=PropertyListFilters(property_type=property_type, city=city),
        pagination=PaginationParams(page=page, limit=limit),
        sort=sort,
    )
    return envelope_response(result)


@router.post("")
async def create_property(
    property_data: str = Form(..., alias="property"),
    images: Optional[List[UploadFile]] = File(None),
    service: PropertyService = Depends(get_property_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Create a property from a JSON ``property`` field plus optional image files."""
    data = parse_model(PropertyCreate, property_data, "property")
    uploads = await read_uploads(images, settings)

    result = await service.create(data, uploads)
    return envelope_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    include: Optional[str] = Query(None),
    service: PropertyService = Depends(get_property_service),
) -> JSONResponse:
    """Get one of the caller's properties."""
    result = await service.get(property_id, include=include)
    return envelope_response(result)


@router.put("/{property_id}")
async def update_property(
    property_id: str,
    property_data: Optional[str] = Form(None, alias="property"),
    delete_images: Optional[str] = Form(None, alias="deleteImages"),
    images: Optional[List[UploadFile]] = File(None),
    service: PropertyService = Depends(get_property_service),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Update fields, add images and remove images in one call."""
    data = parse_model(PropertyUpdate, property_data, "property")
    references = parse_delete_images(delete_images)
    uploads = await read_uploads(images, settings)

    result = await service.update(property_id, data, images=uploads, delete_images=references)
    return envelope_response(result)


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    preserve_history: bool = Query(False),
    service: PropertyService = Depends(get_property_service),
) -> JSONResponse:
    """Soft-deactivate (``preserve_history=true``) or permanently delete."""
    result = await service.delete(property_id, preserve_history=preserve_history)
    return envelope_response(result)
