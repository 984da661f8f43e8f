from .interfaces import (
    GalleryFilter,
    GalleryQueryResult,
    ImageRecord,
    ImageRepository,
    ObjectStorage,
    TagEntry,
)
from .minio_storage import MinIOStorage
from .sql_repository import SQLImageRepository

__all__ = [
    # Interfaces
    "ObjectStorage",
    "ImageRepository",
    "ImageRecord",
    "TagEntry",
    "GalleryFilter",
    "GalleryQueryResult",
    # Implementations
    "MinIOStorage",
    "SQLImageRepository",
]
