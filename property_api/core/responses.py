"""Rendering of the response envelope and API-wide exception handlers."""

import json
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from property_api.core.exceptions import NotFoundError, PropertyApiError, PropertyValidationError
from property_api.schemas.base import ApiResponse

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    NotFoundError.code: status.HTTP_404_NOT_FOUND,
    PropertyValidationError.code: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def envelope_response(result: ApiResponse, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Serialize an envelope, deriving the HTTP status from its error code."""
    if result.success:
        status_code = success_status
    else:
        status_code = STATUS_BY_ERROR.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=status_code, content=result.to_payload())


async def property_api_error_handler(request: Request, exc: PropertyApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.fail(exc.code, exc.message, exc.details).to_payload(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else f"HTTP_{exc.status_code}"
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.fail(error, str(exc.detail)).to_payload(),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = json.loads(json.dumps(exc.errors(), default=str))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ApiResponse.fail(
            PropertyValidationError.code,
            "Request validation failed",
            {"errors": errors},
        ).to_payload(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed unexpectedly", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ApiResponse.fail(PropertyApiError.code, "Internal server error").to_payload(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PropertyApiError, property_api_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
