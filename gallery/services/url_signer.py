"""Signed access URL resolution for stored images.

Every stored image is exposed through a pair of time-limited URLs:
- a display URL, which asks the storage backend to apply a style
  transform when the object is small enough;
- a download URL, which asks the backend to serve the object as an
  attachment named after the last segment of its key.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi.concurrency import run_in_threadpool

from gallery.config import SignerConfig
from gallery.storage.interfaces import ObjectStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessUrls:
    """Display/download URL pair for one stored object."""
    display_url: str = ""
    download_url: str = ""


EMPTY_URLS = AccessUrls()


def file_name_of(storage_key: str) -> str:
    """Return the last path segment of a storage key ("" if none)."""
    return (storage_key or "").split("/")[-1]


class UrlSigner:
    """Resolves storage keys into signed display/download URLs.

    One size probe and two signing operations per resolution; no writes.
    Holds no mutable state besides the injected storage client.

    Example:
        signer = UrlSigner(storage, SignerConfig())
        urls = signer.resolve_access_urls("pixiv/104528710_p0.jpg")
        print(urls.display_url, urls.download_url)
    """

    def __init__(self, storage: ObjectStorage, config: Optional[SignerConfig] = None):
        """Initialize URL signer.

        Args:
            storage: Object storage used for size probes and signing.
            config: Validity window and transform settings.
        """
        self.storage = storage
        self.config = config or SignerConfig()

    def _probe_size(self, storage_key: str) -> Optional[int]:
        """Best-effort object size lookup; None when the probe fails."""
        try:
            return self.storage.object_size(storage_key)
        except Exception as e:
            logger.warning(f"Size probe failed for {storage_key}: {e}")
            return None

    def _transform_params(self, size: Optional[int]) -> Optional[Dict[str, str]]:
        if size is None or size >= self.config.transform_threshold_bytes:
            return None
        return {self.config.transform_param: self.config.transform_value}

    def resolve_access_urls(self, storage_key: str) -> AccessUrls:
        """Sign a display URL and a download URL for a stored object.

        Args:
            storage_key: Object key in storage.

        Returns:
            AccessUrls. Both URLs are empty when the key has no file name.

        Raises:
            Exception: Signing errors from the storage backend propagate.
        """
        file_name = file_name_of(storage_key)
        if not file_name:
            return EMPTY_URLS

        size = self._probe_size(storage_key)
        expires = self.config.expires_seconds

        display_url = self.storage.presigned_get_url(
            storage_key,
            expires,
            extra_query_params=self._transform_params(size),
        )
        download_url = self.storage.presigned_get_url(
            storage_key,
            expires,
            response_headers={
                "content-disposition": f"attachment; filename={file_name}",
            },
        )

        return AccessUrls(display_url=display_url, download_url=download_url)

    async def resolve_access_urls_async(self, storage_key: str) -> AccessUrls:
        """Run ``resolve_access_urls`` on the thread pool."""
        return await run_in_threadpool(self.resolve_access_urls, storage_key)
