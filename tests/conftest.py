"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock
from urllib.parse import urlencode

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gallery.storage.interfaces import ImageRecord, ObjectStorage, TagEntry  # noqa: E402

SMALL_OBJECT_SIZE = 1024 * 1024
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def fake_presign(key, expires_seconds, response_headers=None, extra_query_params=None):
    """Build a deterministic stand-in for a signed URL."""
    params = {"Expires": str(expires_seconds), "Signature": "sig"}
    params.update(extra_query_params or {})
    for name, value in (response_headers or {}).items():
        params[f"response-{name}"] = value
    return f"https://gallery-images.example.com/{key}?{urlencode(params)}"


def make_record(index: int, **overrides) -> ImageRecord:
    """Create an image record; higher index means newer."""
    values = dict(
        id=f"img-{index:03d}",
        source_address=f"{100000 + index}_p0.jpg",
        storage_key=f"pixiv/{100000 + index}_p0.jpg",
        origin_work_id=100000 + index,
        visible=True,
        author="Anne",
        author_id="42",
        title=f"Work {index}",
        tags=[TagEntry(name="landscape", translation="风景")],
        created_at=BASE_TIME + timedelta(minutes=index),
    )
    values.update(overrides)
    return ImageRecord(**values)


# ============================================================
# Storage Fixtures
# ============================================================

@pytest.fixture
def sqlite_repository(tmp_path):
    """Create a temporary SQLite-backed repository for testing."""
    from gallery.storage.sql_repository import SQLImageRepository

    db_path = tmp_path / "test.db"
    return SQLImageRepository(f"sqlite:///{db_path}")


@pytest.fixture
def mock_storage():
    """Create a mock object storage reporting small objects."""
    storage = MagicMock(spec=ObjectStorage)
    storage.object_size.return_value = SMALL_OBJECT_SIZE
    storage.presigned_get_url.side_effect = fake_presign
    storage.list_objects.return_value = []
    return storage


# ============================================================
# Config Fixtures
# ============================================================

@pytest.fixture
def app_config():
    """Create an AppConfig instance for testing."""
    from gallery.config import AppConfig
    return AppConfig()


@pytest.fixture
def dev_config(tmp_path):
    """Create a development config for testing."""
    from gallery.config import AppConfig, DatabaseConfig, StorageConfig

    return AppConfig(
        storage=StorageConfig(
            database=DatabaseConfig(type="sqlite", path=str(tmp_path / "test.db")),
        ),
    )
