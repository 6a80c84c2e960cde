"""Admin properties router (unscoped, audited)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from property_api.core.responses import envelope_response
from property_api.core.security import AuthenticatedUser, require_admin
from property_api.deps import get_admin_property_service
from property_api.models.enums import PropertyType
from property_api.schemas.base import PaginationParams
from property_api.schemas.property import PropertyListFilters, PropertyUpdate
from property_api.services.admin_property import AdminPropertyService

router = APIRouter(prefix="/admin/properties", tags=["admin-properties"])


@router.get("")
async def list_all_properties(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    property_type: Optional[PropertyType] = Query(None),
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    sort: Optional[str] = Query(None),
    service: AdminPropertyService = Depends(get_admin_property_service),
    admin: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    """List properties of every owner."""
    result = await service.list_properties(
        filters=PropertyListFilters(
            user_id=user_id,
            property_type=property_type,
            search=search,
            include_inactive=include_inactive,
        ),
        pagination=PaginationParams(page=page, limit=limit),
        sort=sort,
    )
    return envelope_response(result)


@router.get("/{property_id}")
async def get_any_property(
    property_id: str,
    service: AdminPropertyService = Depends(get_admin_property_service),
    admin: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    return envelope_response(await service.get(property_id))


@router.put("/{property_id}")
async def update_any_property(
    property_id: str,
    data: PropertyUpdate,
    service: AdminPropertyService = Depends(get_admin_property_service),
    admin: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    return envelope_response(await service.update(property_id, data, admin_id=admin.user_id))


@router.delete("/{property_id}")
async def delete_any_property(
    property_id: str,
    service: AdminPropertyService = Depends(get_admin_property_service),
    admin: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    return envelope_response(await service.delete(property_id, admin_id=admin.user_id))


@router.put("/{property_id}/activate")
async def activate_property(
    property_id: str,
    service: AdminPropertyService = Depends(get_admin_property_service),
    admin: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    return envelope_response(await service.activate(property_id, admin_id=admin.user_id))


@router.put("/{property_id}/deactivate")
async def deactivate_property(
    property_id: str,
    service: AdminPropertyService = Depends(get_admin_property_service),
    admin: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    return envelope_response(await service.deactivate(property_id, admin_id=admin.user_id))
