"""FastAPI dependency injection for API routes.

This module provides dependency injection using FastAPI's app.state pattern.
Dependencies are created once at startup and injected via create_app().

Usage:
    # In main.py
    config = AppConfig.from_yaml("config/settings.yaml")
    storage, repository = create_storage(config)
    app = create_app(config, repository=repository, object_storage=storage)

    # In routes
    @router.get("/gallery")
    async def list_gallery(service: GalleryService = Depends(get_gallery_service)):
        return await service.list_gallery(...)
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request

from gallery.auth import AuthVerifier
from gallery.config import AppConfig
from gallery.services.gallery_service import GalleryService
from gallery.services.url_signer import UrlSigner
from gallery.storage.interfaces import ImageRepository, ObjectStorage

logger = logging.getLogger(__name__)


# ============================================================
# State Container
# ============================================================

class AppState:
    """Application state container.

    Holds all injected dependencies. Attached to app.state during startup.
    The repository (with its connection pool) and the storage client are
    process-wide and shared by every request.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        repository: Optional[ImageRepository] = None,
        object_storage: Optional[ObjectStorage] = None,
        auth_verifier: Optional[AuthVerifier] = None,
    ):
        self.config = config
        self.repository = repository
        self.object_storage = object_storage
        self.auth_verifier = auth_verifier

    @property
    def is_configured(self) -> bool:
        """Check if essential dependencies are configured."""
        return self.config is not None


# ============================================================
# Dependency Getters
# ============================================================

def get_app_state(request: Request) -> AppState:
    """Get application state from request.

    Raises:
        HTTPException: If app state not initialized.
    """
    state: Optional[AppState] = getattr(request.app.state, "app_state", None)
    if state is None:
        raise HTTPException(
            status_code=503,
            detail="Application not properly initialized"
        )
    return state


def get_config(state: AppState = Depends(get_app_state)) -> AppConfig:
    """Get application configuration, falling back to defaults."""
    return state.config or AppConfig()


def get_repository(state: AppState = Depends(get_app_state)) -> ImageRepository:
    """Get image repository instance.

    Raises:
        HTTPException: If repository not available.
    """
    if state.repository is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available"
        )
    return state.repository


def get_object_storage(state: AppState = Depends(get_app_state)) -> ObjectStorage:
    """Get object storage instance.

    Raises:
        HTTPException: If storage not available.
    """
    if state.object_storage is None:
        raise HTTPException(
            status_code=503,
            detail="Image storage not available"
        )
    return state.object_storage


def get_optional_repository(state: AppState = Depends(get_app_state)) -> Optional[ImageRepository]:
    """Get repository instance (optional, no error if missing).

    Use this for health checks where missing dependencies should be reported,
    not raise exceptions.
    """
    return state.repository


def get_optional_object_storage(state: AppState = Depends(get_app_state)) -> Optional[ObjectStorage]:
    """Get object storage instance (optional, no error if missing)."""
    return state.object_storage


def get_url_signer(
    storage: ObjectStorage = Depends(get_object_storage),
    config: AppConfig = Depends(get_config),
) -> UrlSigner:
    """Get URL signer bound to the shared storage client."""
    return UrlSigner(storage, config.signer)


def get_gallery_service(
    repository: ImageRepository = Depends(get_repository),
    signer: UrlSigner = Depends(get_url_signer),
    config: AppConfig = Depends(get_config),
) -> GalleryService:
    """Get gallery service instance."""
    return GalleryService(repository=repository, signer=signer, config=config.gallery)


# ============================================================
# Health Check Utilities
# ============================================================

def check_database_health(repository: Optional[ImageRepository]) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        Tuple of (is_healthy, status_message)
    """
    if repository is None:
        return False, "not_configured"

    try:
        repository.ping()
        return True, "ok"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False, f"error: {str(e)[:50]}"


def check_storage_health(storage: Optional[ObjectStorage]) -> tuple[bool, str]:
    """Check object storage connectivity.

    Returns:
        Tuple of (is_healthy, status_message)
    """
    if storage is None:
        return False, "not_configured"

    try:
        # Try to list objects (lightweight check)
        storage.list_objects(prefix="__health_check__")
        return True, "ok"
    except Exception as e:
        logger.warning(f"Storage health check failed: {e}")
        return False, f"error: {str(e)[:50]}"
