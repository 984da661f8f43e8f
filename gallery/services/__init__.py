"""Service layer for business logic.

Services encapsulate business logic and data access,
keeping routes thin and focused on HTTP concerns.
"""

from .gallery_service import GalleryQueryParams, GalleryService
from .url_signer import AccessUrls, UrlSigner

__all__ = ["AccessUrls", "GalleryQueryParams", "GalleryService", "UrlSigner"]
