"""Health check endpoints.

- /health: process is up; reports the configured version
- /live: liveness probe, no dependency access
- /ready: the image repository answers ``ping()`` and the bucket can be listed
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from gallery.api.dependencies import (
    AppState,
    check_database_health,
    check_storage_health,
    get_app_state,
    get_optional_object_storage,
    get_optional_repository,
)
from gallery.storage.interfaces import ImageRepository, ObjectStorage

router = APIRouter()
logger = logging.getLogger(__name__)


# ============================================================
# Response Models
# ============================================================

class HealthResponse(BaseModel):
    """Service status."""
    status: str
    timestamp: datetime
    version: str


class LivenessResponse(BaseModel):
    """Liveness probe result."""
    alive: bool
    timestamp: datetime


class ReadinessResponse(BaseModel):
    """Readiness of the gallery's two backends.

    ``checks`` maps each performed check to its outcome:
    ``repository_ping`` and ``bucket_list``.
    """
    ready: bool
    database: str
    storage: str
    checks: Dict[str, bool]
    bucket: Optional[str] = None


# ============================================================
# Endpoints
# ============================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(state: AppState = Depends(get_app_state)):
    """Report that the process is serving requests."""
    version = state.config.app.version if state.config else "0.1.0"
    return HealthResponse(status="healthy", timestamp=datetime.now(), version=version)


@router.get("/live", response_model=LivenessResponse)
async def liveness_check():
    return LivenessResponse(alive=True, timestamp=datetime.now())


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    state: AppState = Depends(get_app_state),
    repository: Optional[ImageRepository] = Depends(get_optional_repository),
    storage: Optional[ObjectStorage] = Depends(get_optional_object_storage),
):
    """Check that listings can be served.

    Pings the image repository and lists the image bucket, both on the
    thread pool and concurrently. Answers 503 when either fails or was
    never configured.
    """
    (db_ok, db_status), (storage_ok, storage_status) = await asyncio.gather(
        run_in_threadpool(check_database_health, repository),
        run_in_threadpool(check_storage_health, storage),
    )

    ready = db_ok and storage_ok
    if not ready:
        response.status_code = 503
        logger.warning(
            f"Not ready: repository ping={db_status}, bucket list={storage_status}"
        )

    return ReadinessResponse(
        ready=ready,
        database=db_status,
        storage=storage_status,
        checks={"repository_ping": db_ok, "bucket_list": storage_ok},
        bucket=state.config.storage.images.bucket if state.config else None,
    )
