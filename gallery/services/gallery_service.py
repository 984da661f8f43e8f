"""Gallery service for business logic and data access.

This service turns raw listing parameters into a typed filter, fetches
one page from the repository and attaches signed URLs to every record,
providing a clean interface for API routes.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from gallery.config import GalleryConfig
from gallery.errors import InvalidInputError
from gallery.services.url_signer import EMPTY_URLS, AccessUrls, UrlSigner
from gallery.storage.interfaces import (
    GalleryFilter,
    ImageRecord,
    ImageRepository,
    TagEntry,
)

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes")
FALSE_VALUES = ("false", "0", "no")

# Signed 64-bit bound for SQL OFFSET and BIGINT columns
MAX_SQL_INT = 2 ** 63 - 1


@dataclass
class GalleryQueryParams:
    """Raw gallery listing parameters, as received on the query string."""
    page: Optional[str] = None
    limit: Optional[str] = None
    tag: Optional[str] = None
    tags: Optional[str] = None
    visible: Optional[str] = None
    author: Optional[str] = None
    author_id: Optional[str] = None
    illust_id: Optional[str] = None


@dataclass
class GalleryItem:
    """Gallery item data transfer object for API responses.

    No storage key; clients only get signed URLs.
    """
    id: str
    source_address: str
    origin_url: Optional[str]
    origin_page: Optional[int]
    visible: bool
    author: Optional[str]
    author_id: Optional[str]
    origin_work_id: int
    title: Optional[str]
    image_key: Optional[str]
    width: Optional[int]
    height: Optional[int]
    tags: List[TagEntry]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    display_url: str = ""
    download_url: str = ""

    @classmethod
    def from_record(cls, record: ImageRecord, urls: AccessUrls) -> "GalleryItem":
        """Convert from database record plus resolved URLs."""
        origin = record.origin() or {}
        return cls(
            id=record.id or "",
            source_address=record.source_address,
            origin_url=origin.get("url"),
            origin_page=origin.get("page"),
            visible=record.visible,
            author=record.author,
            author_id=record.author_id,
            origin_work_id=record.origin_work_id,
            title=record.title,
            image_key=record.image_key,
            width=record.width,
            height=record.height,
            tags=list(record.tags),
            created_at=record.created_at,
            updated_at=record.updated_at,
            display_url=urls.display_url,
            download_url=urls.download_url,
        )


@dataclass
class GalleryPage:
    """Result of list_gallery operation."""
    items: List[GalleryItem]
    page: int
    limit: int
    total: int
    total_pages: int


@dataclass
class ParsedGalleryQuery:
    """Validated listing request."""
    gallery_filter: GalleryFilter = field(default_factory=GalleryFilter)
    page: int = 1
    limit: int = 20


def _parse_int(value: Optional[str], default: int) -> int:
    """Lenient integer parsing for paging values."""
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_visible(value: Optional[str]) -> Optional[bool]:
    if value is None or not value.strip():
        return None
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise InvalidInputError(f"Invalid visible value: {value!r}")


def _parse_tag_names(tag: Optional[str], tags: Optional[str]) -> frozenset:
    """Merge the single ``tag`` and the comma-separated ``tags`` inputs.

    Both contribute to the same required set; a record must carry all of them.
    """
    names = set()
    if tag and tag.strip():
        names.add(tag.strip())
    if tags:
        names.update(t.strip() for t in tags.split(",") if t.strip())
    return frozenset(names)


def parse_gallery_params(
    params: GalleryQueryParams,
    config: Optional[GalleryConfig] = None,
) -> ParsedGalleryQuery:
    """Validate raw parameters and build the typed filter.

    Args:
        params: Raw query-string values.
        config: Paging defaults and limits.

    Returns:
        ParsedGalleryQuery with filter, page and limit.

    Raises:
        InvalidInputError: If a value cannot be coerced (non-numeric
            ``illust_id``, unknown ``visible`` value, ``limit <= 0``) or
            falls outside the range the database can hold.
    """
    config = config or GalleryConfig()

    page = max(_parse_int(params.page, 1), 1)
    limit = _parse_int(params.limit, config.default_limit)
    if limit <= 0:
        raise InvalidInputError("limit must be a positive integer")
    limit = min(limit, config.max_limit)
    if (page - 1) * limit > MAX_SQL_INT:
        raise InvalidInputError(f"page is out of range: {page}")

    origin_work_id = None
    if params.illust_id is not None and params.illust_id.strip():
        try:
            origin_work_id = int(params.illust_id.strip())
        except ValueError:
            raise InvalidInputError(
                f"illust_id must be an integer: {params.illust_id!r}"
            ) from None
        if not -MAX_SQL_INT - 1 <= origin_work_id <= MAX_SQL_INT:
            raise InvalidInputError(f"illust_id is out of range: {origin_work_id}")

    gallery_filter = GalleryFilter(
        visible=_parse_visible(params.visible),
        tag_names=_parse_tag_names(params.tag, params.tags),
        author=params.author.strip() if params.author and params.author.strip() else None,
        author_id=params.author_id.strip() if params.author_id and params.author_id.strip() else None,
        origin_work_id=origin_work_id,
    )

    return ParsedGalleryQuery(gallery_filter=gallery_filter, page=page, limit=limit)


class GalleryService:
    """Service for gallery browsing operations.

    Encapsulates repository queries and signed URL resolution.
    Routes should use this service instead of accessing storage directly.

    Example:
        service = GalleryService(repository, signer)
        page = await service.list_gallery(GalleryQueryParams(tags="landscape"))
        for item in page.items:
            print(item.display_url)
    """

    def __init__(
        self,
        repository: ImageRepository,
        signer: UrlSigner,
        config: Optional[GalleryConfig] = None,
    ):
        """Initialize gallery service.

        Args:
            repository: Image record store.
            signer: Signed URL resolver.
            config: Paging defaults and limits.
        """
        self.repository = repository
        self.signer = signer
        self.config = config or GalleryConfig()

    async def _resolve_or_empty(self, record: ImageRecord) -> AccessUrls:
        """Resolve URLs for one record; failures degrade to empty URLs."""
        try:
            return await self.signer.resolve_access_urls_async(record.storage_key)
        except Exception as e:
            logger.error(f"Failed to resolve URLs for image {record.id}: {e}")
            return EMPTY_URLS

    async def _attach_urls(self, records: List[ImageRecord]) -> List[GalleryItem]:
        # gather keeps input order regardless of completion order
        urls = await asyncio.gather(*(self._resolve_or_empty(r) for r in records))
        return [GalleryItem.from_record(r, u) for r, u in zip(records, urls)]

    async def list_gallery(self, params: GalleryQueryParams) -> GalleryPage:
        """List gallery items for raw listing parameters.

        Args:
            params: Raw query-string values.

        Returns:
            GalleryPage with items (signed URLs attached) and pagination.

        Raises:
            InvalidInputError: On malformed parameters.
        """
        parsed = parse_gallery_params(params, self.config)

        result = await run_in_threadpool(
            self.repository.query,
            parsed.gallery_filter,
            parsed.page,
            parsed.limit,
        )
        items = await self._attach_urls(result.records)

        logger.debug(
            f"Gallery page {parsed.page}: {len(items)} of {result.total} items"
        )

        return GalleryPage(
            items=items,
            page=parsed.page,
            limit=parsed.limit,
            total=result.total,
            total_pages=math.ceil(result.total / parsed.limit),
        )

    async def get_image(self, image_id: str) -> Optional[GalleryItem]:
        """Get a single gallery item with signed URLs.

        Args:
            image_id: Image ID.

        Returns:
            GalleryItem or None if missing or deleted.
        """
        record = await run_in_threadpool(self.repository.get_image, image_id)
        if record is None:
            return None
        urls = await self._resolve_or_empty(record)
        return GalleryItem.from_record(record, urls)

