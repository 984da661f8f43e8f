"""FastAPI application for the gallery backend.

This module provides the application factory with proper dependency injection.
All dependencies (config, repository, storage, auth verifier) are injected
at creation time.

Example:
    # Create with dependencies
    config = AppConfig.from_yaml("config/settings.yaml")
    object_storage, repository = create_storage(config)
    app = create_app(
        config=config,
        repository=repository,
        object_storage=object_storage,
    )

    # Run with uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gallery.auth import AuthVerifier
from gallery.config import AppConfig
from gallery.errors import GalleryError
from gallery.storage.interfaces import ImageRepository, ObjectStorage

from .dependencies import AppState
from .routes import gallery as gallery_routes
from .routes import health, images

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    """Render every error as a flat ``{"error": message}`` body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(request: Request, exc: GalleryError):
        if exc.status_code >= 500:
            logger.error(f"Unhandled gallery error: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


def create_app(
    config: Optional[AppConfig] = None,
    repository: Optional[ImageRepository] = None,
    object_storage: Optional[ObjectStorage] = None,
    auth_verifier: Optional[AuthVerifier] = None,
    title: str = "Gallery Backend API",
    version: str = "0.1.0",
) -> FastAPI:
    """Create and configure FastAPI application with dependency injection.

    Args:
        config: Application configuration (injected).
        repository: Image repository instance (injected).
        object_storage: Object storage instance (injected).
        auth_verifier: Bearer credential verifier (injected).
        title: API title.
        version: API version (overridden by config if provided).

    Returns:
        Configured FastAPI application with injected dependencies.
    """
    # Use version from config if available
    if config is not None:
        version = config.app.version

    app = FastAPI(
        title=title,
        description="REST API for browsing the tagged image gallery",
        version=version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Configure CORS
    cors_config = config.api.cors if config else None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.allow_origins if cors_config else ["*"],
        allow_credentials=cors_config.allow_credentials if cors_config else True,
        allow_methods=cors_config.allow_methods if cors_config else ["*"],
        allow_headers=cors_config.allow_headers if cors_config else ["*"],
    )

    _register_error_handlers(app)

    # Inject dependencies via app.state
    app.state.app_state = AppState(
        config=config,
        repository=repository,
        object_storage=object_storage,
        auth_verifier=auth_verifier,
    )

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(gallery_routes.router, prefix="/api", tags=["Gallery"])
    app.include_router(images.router, prefix="/api", tags=["Images"])

    return app


# Default app instance (for uvicorn direct run without main.py)
# Note: This will have no dependencies injected - use main.py for production
app = create_app()
