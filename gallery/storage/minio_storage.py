"""MinIO implementation for object storage."""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from minio import Minio
from minio.error import S3Error

from .interfaces import ObjectStorage

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject", "ResourceNotFound")


class MinIOStorage(ObjectStorage):
    """MinIO implementation for object storage.

    Uses MinIO (S3-compatible) for reading gallery binaries and signing
    time-limited URLs to them. The client is created once and shared; it is
    safe for concurrent use.

    Example:
        >>> storage = MinIOStorage(
        ...     endpoint="localhost:9000",
        ...     access_key="minioadmin",
        ...     secret_key="minioadmin",
        ...     bucket="gallery-images"
        ... )
        >>> storage.object_size("pixiv/104528710_p0.jpg")
        1843221
        >>> url = storage.presigned_get_url("pixiv/104528710_p0.jpg", 7200)
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str = "gallery-images",
        secure: bool = False,
        region: Optional[str] = None,
        client: Optional[Minio] = None,
    ):
        """Initialize MinIO storage.

        Args:
            endpoint: MinIO server endpoint (host:port).
            access_key: Access key (username).
            secret_key: Secret key (password).
            bucket: Bucket name to use.
            secure: Use HTTPS connection.
            region: Bucket region; avoids a location lookup when signing.
            client: Pre-built client (mainly for tests).
        """
        self.client = client or Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        self.bucket = bucket
        logger.info(f"MinIO storage ready: {endpoint}/{bucket}")

    def object_size(self, key: str) -> int:
        """Return the size of an object via a HEAD (stat) request.

        Args:
            key: Object path.

        Returns:
            Size in bytes.

        Raises:
            FileNotFoundError: If the object does not exist.
        """
        object_name = self._normalize_path(key)

        try:
            stat = self.client.stat_object(self.bucket, object_name)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                raise FileNotFoundError(f"Object not found: {key}") from e
            raise

        return int(stat.size or 0)

    def presigned_get_url(
        self,
        key: str,
        expires_seconds: int,
        response_headers: Optional[Dict[str, str]] = None,
        extra_query_params: Optional[Dict[str, str]] = None,
    ) -> str:
        """Get a presigned GET URL for an object.

        Response header overrides are passed as ``response-<header>`` query
        parameters, which S3-compatible backends echo back on download.

        Args:
            key: Object path.
            expires_seconds: URL expiration time in seconds.
            response_headers: Header overrides, e.g.
                ``{"content-disposition": "attachment; filename=a.jpg"}``.
            extra_query_params: Extra signed query parameters.

        Returns:
            Presigned URL string.
        """
        object_name = self._normalize_path(key)
        signed_headers = {
            f"response-{name.lower()}": value
            for name, value in (response_headers or {}).items()
        }

        try:
            return self.client.presigned_get_object(
                self.bucket,
                object_name,
                expires=timedelta(seconds=expires_seconds),
                response_headers=signed_headers or None,
                extra_query_params=extra_query_params or None,
            )
        except S3Error as e:
            logger.error(f"Failed to generate presigned URL: {e}")
            raise

    def list_objects(self, prefix: str = "") -> List[str]:
        """List objects with given prefix.

        Args:
            prefix: Path prefix to filter.

        Returns:
            List of object paths.
        """
        try:
            objects = self.client.list_objects(
                self.bucket,
                prefix=prefix,
                recursive=True
            )
            return [obj.object_name for obj in objects]
        except S3Error as e:
            logger.error(f"Failed to list objects: {e}")
            raise

    def _normalize_path(self, path: str) -> str:
        """Normalize path by removing bucket prefix if present."""
        bucket_prefix = f"{self.bucket}/"
        if path.startswith(bucket_prefix):
            return path[len(bucket_prefix):]
        return path
