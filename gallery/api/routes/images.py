"""Image URL endpoint.

Signs display/download URLs for an arbitrary stored object, for clients
that already know the object key.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from gallery.api.dependencies import get_url_signer
from gallery.api.security import require_image_url_user
from gallery.errors import InvalidInputError
from gallery.services.url_signer import UrlSigner

router = APIRouter(dependencies=[Depends(require_image_url_user)])
logger = logging.getLogger(__name__)


# ============================================================
# Response Models
# ============================================================

class ImageUrlData(BaseModel):
    """Signed URL pair."""
    displayUrl: str
    downloadUrl: str


class ImageUrlResponse(BaseModel):
    """Image URL response."""
    success: bool = True
    data: ImageUrlData


# ============================================================
# Endpoints
# ============================================================

def require_file_name(
    fileName: Optional[str] = Query(None, description="Object key in storage"),
) -> str:
    """Reject a missing or blank key before storage is resolved."""
    if not fileName or not fileName.strip():
        raise InvalidInputError("Missing fileName parameter")
    return fileName


@router.get("/image-url", response_model=ImageUrlResponse)
async def get_image_url(
    fileName: str = Depends(require_file_name),
    signer: UrlSigner = Depends(get_url_signer),
):
    """Get signed display and download URLs for a stored object.

    Both URLs expire after the configured validity window.
    """
    try:
        urls = await signer.resolve_access_urls_async(fileName)
    except Exception as e:
        logger.error(f"Image URL fetch error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch image URL") from e

    return ImageUrlResponse(
        data=ImageUrlData(displayUrl=urls.display_url, downloadUrl=urls.download_url),
    )
