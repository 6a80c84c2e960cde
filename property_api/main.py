"""Property Listings API - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from property_api.core.config import get_settings
from property_api.core.database import init_db
from property_api.core.logging import setup_logging
from property_api.core.responses import register_exception_handlers
from property_api.routers import admin_properties_router, properties_router

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging(settings.log_level, settings.log_format)
    await init_db()
    logger.info("CORS configured with origins: %s", settings.origins)
    logger.info("Serving images from %s", settings.image_root.resolve())
    yield
    # Shutdown


app = FastAPI(
    title=settings.app_name,
    description="Property listings with image attachments, admin override and audit trail.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# API v1 routers
app.include_router(properties_router, prefix=settings.api_v1_prefix)
app.include_router(admin_properties_router, prefix=settings.api_v1_prefix)

# Image references are paths below the upload root, so they are served as-is
settings.image_root.mkdir(parents=True, exist_ok=True)
app.mount(
    f"/{settings.image_namespace}",
    StaticFiles(directory=settings.image_root),
    name="property-images",
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
    }
