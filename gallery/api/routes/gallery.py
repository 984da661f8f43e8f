"""Gallery browsing endpoints.

Listing and detail views over the image collection. All logic is
delegated to GalleryService; records never expose their storage key,
only the signed URLs derived from it.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from gallery.api.dependencies import get_gallery_service
from gallery.api.security import require_gallery_user
from gallery.errors import GalleryError
from gallery.services.gallery_service import (
    GalleryItem,
    GalleryQueryParams,
    GalleryService,
)

router = APIRouter(dependencies=[Depends(require_gallery_user)])
logger = logging.getLogger(__name__)


# ============================================================
# Response Models (DTO - Data Transfer Objects)
# ============================================================

class TagResponse(BaseModel):
    """Tag entry in response."""
    name: str
    translation: Optional[str] = None


class GalleryItemResponse(BaseModel):
    """Single gallery item in response."""
    id: str
    sourceAddress: str
    originUrl: Optional[str] = None
    originPage: Optional[int] = None
    visible: bool
    author: Optional[str] = None
    authorId: Optional[str] = None
    originWorkId: int
    title: Optional[str] = None
    imageKey: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    tags: List[TagResponse]
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    displayUrl: str
    downloadUrl: str

    @classmethod
    def from_item(cls, item: GalleryItem) -> "GalleryItemResponse":
        return cls(
            id=item.id,
            sourceAddress=item.source_address,
            originUrl=item.origin_url,
            originPage=item.origin_page,
            visible=item.visible,
            author=item.author,
            authorId=item.author_id,
            originWorkId=item.origin_work_id,
            title=item.title,
            imageKey=item.image_key,
            width=item.width,
            height=item.height,
            tags=[TagResponse(name=t.name, translation=t.translation) for t in item.tags],
            createdAt=item.created_at,
            updatedAt=item.updated_at,
            displayUrl=item.display_url,
            downloadUrl=item.download_url,
        )


class PaginationResponse(BaseModel):
    """Pagination block."""
    page: int
    limit: int
    total: int
    totalPages: int


class GalleryListResponse(BaseModel):
    """Paginated gallery response."""
    data: List[GalleryItemResponse]
    pagination: PaginationResponse


class GalleryItemDetailResponse(BaseModel):
    """Single gallery item response."""
    data: GalleryItemResponse


# ============================================================
# Endpoints
# ============================================================

@router.get("/gallery", response_model=GalleryListResponse)
async def list_gallery(
    page: Optional[str] = Query(None, description="1-based page number (default 1)"),
    limit: Optional[str] = Query(None, description="Items per page (default 20)"),
    tag: Optional[str] = Query(None, description="Required tag name"),
    tags: Optional[str] = Query(None, description="Comma-separated required tag names"),
    visible: Optional[str] = Query(None, description="true for normal, false for R-18"),
    author: Optional[str] = Query(None, description="Case-insensitive author substring"),
    author_id: Optional[str] = Query(None, description="Exact author ID"),
    illust_id: Optional[str] = Query(None, description="Exact origin work ID"),
    service: GalleryService = Depends(get_gallery_service),
):
    """List gallery items with optional filters.

    Every supplied filter must match. Items are ordered newest first and
    carry signed display/download URLs.
    """
    params = GalleryQueryParams(
        page=page,
        limit=limit,
        tag=tag,
        tags=tags,
        visible=visible,
        author=author,
        author_id=author_id,
        illust_id=illust_id,
    )

    try:
        result = await service.list_gallery(params)
    except GalleryError:
        raise
    except Exception as e:
        logger.error(f"Gallery fetch error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch gallery data") from e

    return GalleryListResponse(
        data=[GalleryItemResponse.from_item(i) for i in result.items],
        pagination=PaginationResponse(
            page=result.page,
            limit=result.limit,
            total=result.total,
            totalPages=result.total_pages,
        ),
    )


@router.get("/gallery/{image_id}", response_model=GalleryItemDetailResponse)
async def get_gallery_item(
    image_id: str,
    service: GalleryService = Depends(get_gallery_service),
):
    """Get a single gallery item by ID with signed URLs."""
    try:
        item = await service.get_image(image_id)
    except Exception as e:
        logger.error(f"Gallery item fetch error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch image") from e

    if item is None:
        raise HTTPException(
            status_code=404,
            detail=f"Image not found: {image_id}"
        )

    return GalleryItemDetailResponse(data=GalleryItemResponse.from_item(item))
