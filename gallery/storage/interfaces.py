"""Abstract interfaces for storage modules."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

# "<numericId>_p<page>.<ext>", e.g. "104528710_p0.jpg"
SOURCE_ADDRESS_PATTERN = re.compile(r"^(\d+)_p(\d+)\.(\w+)$")
ORIGIN_URL_TEMPLATE = "https://www.pixiv.net/artworks/{work_id}"


@dataclass
class TagEntry:
    """A single tag attached to an image.

    Attributes:
        name: Canonical tag name, used for filtering.
        translation: Optional display translation.
        visible: Reserved flag carried by the schema; never read.
    """
    name: str
    translation: Optional[str] = None
    visible: Optional[bool] = None


@dataclass
class ImageRecord:
    """Image record for database storage.

    Represents one gallery entry, with a reference to the binary asset
    in object storage.

    Attributes:
        id: Unique identifier (UUID).
        source_address: Origin address, "<numericId>_p<page>.<ext>".
        storage_key: Object key of the binary asset. Never exposed to clients.
        origin_work_id: Numeric id of the origin work.
        visible: False marks restricted (R-18) content.
        author, author_id: Independent, optional author fields.
        title: Optional title.
        deleted: Soft-delete flag.
        width, height: Optional pixel dimensions (display hints).
        image_key: Optional secondary asset key.
        tags: Ordered tag entries.
        created_at: Set once on insert.
        updated_at: Refreshed on every save.
    """
    id: Optional[str] = None
    source_address: str = ""
    storage_key: str = ""
    origin_work_id: int = 0
    visible: bool = False
    author: Optional[str] = None
    author_id: Optional[str] = None
    title: Optional[str] = None
    deleted: bool = False
    width: Optional[int] = None
    height: Optional[int] = None
    image_key: Optional[str] = None
    tags: List[TagEntry] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def origin(self) -> Optional[Dict[str, object]]:
        """Parse ``source_address`` into the origin work URL and page number.

        Returns:
            Dict with ``url`` and ``page``, or None if the address does not
            follow the "<numericId>_p<page>.<ext>" format.
        """
        match = SOURCE_ADDRESS_PATTERN.match(self.source_address or "")
        if match is None:
            return None
        return {
            "url": ORIGIN_URL_TEMPLATE.format(work_id=match.group(1)),
            "page": int(match.group(2)),
        }


@dataclass(frozen=True)
class GalleryFilter:
    """Typed gallery filter. Every set field must match (logical AND).

    ``deleted == False`` is always applied on top of these fields.
    """
    visible: Optional[bool] = None
    tag_names: FrozenSet[str] = frozenset()
    author: Optional[str] = None
    author_id: Optional[str] = None
    origin_work_id: Optional[int] = None


@dataclass
class GalleryQueryResult:
    """One page of records plus the total over the full filtered set."""
    records: List[ImageRecord]
    total: int


class ObjectStorage(ABC):
    """Abstract interface for the object store holding image binaries.

    Only the read side is needed by the gallery: size probes and
    signed URL generation.
    """

    @abstractmethod
    def object_size(self, key: str) -> int:
        """Return the object size in bytes (HEAD request).

        Args:
            key: Object key.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        pass

    @abstractmethod
    def presigned_get_url(
        self,
        key: str,
        expires_seconds: int,
        response_headers: Optional[Dict[str, str]] = None,
        extra_query_params: Optional[Dict[str, str]] = None,
    ) -> str:
        """Create a time-limited GET URL for an object.

        Args:
            key: Object key.
            expires_seconds: Validity window from now.
            response_headers: Response header overrides to sign into the URL.
            extra_query_params: Additional signed query parameters.

        Returns:
            Signed URL string.
        """
        pass

    @abstractmethod
    def list_objects(self, prefix: str = "") -> List[str]:
        """List object keys with given prefix."""
        pass


class ImageRepository(ABC):
    """Abstract interface for the image record store."""

    @abstractmethod
    def query(
        self,
        gallery_filter: GalleryFilter,
        page: int = 1,
        page_size: int = 20,
    ) -> GalleryQueryResult:
        """Fetch one page of non-deleted records matching the filter.

        Records are ordered by ``created_at`` descending. ``page`` and
        ``page_size`` are 1-based and must already be clamped by the caller.

        Args:
            gallery_filter: Filter to apply.
            page: Page number.
            page_size: Records per page.

        Returns:
            GalleryQueryResult with the page and the total match count.
        """
        pass

    @abstractmethod
    def get_image(self, image_id: str) -> Optional[ImageRecord]:
        """Get a non-deleted record by ID, or None."""
        pass

    @abstractmethod
    def save_image(self, record: ImageRecord) -> str:
        """Insert or update a record.

        Args:
            record: Record to save. A missing id is generated.

        Returns:
            Record ID.
        """
        pass

    @abstractmethod
    def ping(self) -> None:
        """Lightweight connectivity probe for health checks."""
        pass
