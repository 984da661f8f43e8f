"""Tests for API endpoints and dependency injection."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from gallery.api.app import create_app
from gallery.auth import JWTAuthVerifier
from gallery.config import AppConfig, AppSettings, AuthConfig
from gallery.storage.interfaces import (
    GalleryFilter,
    GalleryQueryResult,
    ImageRepository,
    TagEntry,
)

from conftest import make_record

JWT_SECRET = "gallery-test-secret-with-enough-bytes-for-hs256"


def _token(secret=JWT_SECRET, **claims):
    payload = {"userId": 7, "username": "anne"}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def mock_config():
    """Create a mock AppConfig."""
    return AppConfig()


@pytest.fixture
def mock_repository():
    """Create a mock image repository."""
    repository = MagicMock(spec=ImageRepository)
    repository.query.return_value = GalleryQueryResult(records=[], total=0)
    repository.get_image.return_value = None
    return repository


@pytest.fixture
def client(mock_config, mock_repository, mock_storage):
    """Create test client with mocked dependencies."""
    app = create_app(
        config=mock_config,
        repository=mock_repository,
        object_storage=mock_storage,
    )
    return TestClient(app)


@pytest.fixture
def client_no_deps():
    """Create test client without dependencies (for testing error cases)."""
    app = create_app()
    return TestClient(app)


@pytest.fixture
def auth_config():
    """Config requiring credentials on both route families."""
    return AppConfig(
        auth=AuthConfig(
            require_for_gallery=True,
            require_for_image_url=True,
            jwt_secret=JWT_SECRET,
        )
    )


@pytest.fixture
def auth_client(auth_config, mock_repository, mock_storage):
    """Create test client enforcing bearer authentication."""
    app = create_app(
        config=auth_config,
        repository=mock_repository,
        object_storage=mock_storage,
        auth_verifier=JWTAuthVerifier(JWT_SECRET),
    )
    return TestClient(app)


# ============================================================
# Health Endpoint Tests
# ============================================================

class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        """Test basic health check returns healthy."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "version" in data

    def test_liveness_check(self, client):
        """Test liveness probe returns alive."""
        response = client.get("/api/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True

    def test_readiness_check_all_healthy(self, client, mock_repository):
        """Test readiness check when all deps are healthy."""
        response = client.get("/api/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is True
        assert data["database"] == "ok"
        assert data["storage"] == "ok"
        mock_repository.ping.assert_called_once()
        assert data["checks"] == {"repository_ping": True, "bucket_list": True}
        assert data["bucket"] == "gallery-images"

    def test_readiness_check_database_error(self, client, mock_repository):
        """Test readiness check when database fails."""
        mock_repository.ping.side_effect = Exception("Connection failed")

        response = client.get("/api/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["ready"] is False
        assert "error" in data["database"]
        assert data["checks"] == {"repository_ping": False, "bucket_list": True}

    def test_readiness_check_storage_error(self, client, mock_storage):
        """Test readiness check when storage fails."""
        mock_storage.list_objects.side_effect = Exception("MinIO unavailable")

        response = client.get("/api/ready")

        assert response.status_code == 503
        assert "error" in response.json()["storage"]

    def test_readiness_no_deps_configured(self, client_no_deps):
        """Test readiness check when no dependencies are injected."""
        response = client_no_deps.get("/api/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["database"] == "not_configured"
        assert data["storage"] == "not_configured"
        assert data["bucket"] is None


# ============================================================
# Gallery Endpoint Tests
# ============================================================

class TestGalleryEndpoints:
    """Tests for gallery listing endpoints."""

    def test_list_gallery_empty(self, client):
        response = client.get("/api/gallery")

        assert response.status_code == 200
        data = response.json()
        assert data["data"] == []
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 0, "totalPages": 0}

    def test_list_gallery_with_data(self, client, mock_repository):
        """Test items carry metadata and signed URLs but no storage key."""
        record = make_record(
            1,
            width=1200,
            height=800,
            tags=[TagEntry(name="landscape", translation="风景", visible=True)],
        )
        mock_repository.query.return_value = GalleryQueryResult(records=[record], total=1)

        response = client.get("/api/gallery")

        assert response.status_code == 200
        item = response.json()["data"][0]
        assert item["id"] == "img-001"
        assert item["sourceAddress"] == "100001_p0.jpg"
        assert item["originUrl"] == "https://www.pixiv.net/artworks/100001"
        assert item["originPage"] == 0
        assert item["originWorkId"] == 100001
        assert item["authorId"] == "42"
        assert item["width"] == 1200
        assert item["tags"] == [{"name": "landscape", "translation": "风景"}]
        assert "x-oss-process=style%2Fsort_image" in item["displayUrl"]
        assert "response-content-disposition" in item["downloadUrl"]
        assert "storageKey" not in item
        assert "storage_key" not in item

    def test_list_gallery_with_filters(self, client, mock_repository):
        """Test query parameters are turned into a typed filter."""
        response = client.get(
            "/api/gallery",
            params={
                "page": "2",
                "limit": "10",
                "visible": "false",
                "tag": "cat",
                "tags": "cute, ,fluffy",
                "author": "anne",
                "author_id": "42",
                "illust_id": "100001",
            },
        )

        assert response.status_code == 200
        mock_repository.query.assert_called_once_with(
            GalleryFilter(
                visible=False,
                tag_names=frozenset({"cat", "cute", "fluffy"}),
                author="anne",
                author_id="42",
                origin_work_id=100001,
            ),
            2,
            10,
        )

    def test_list_gallery_pagination(self, client, mock_repository):
        records = [make_record(i) for i in range(25, 5, -1)]
        mock_repository.query.return_value = GalleryQueryResult(records=records, total=45)

        response = client.get("/api/gallery?page=2&limit=20")

        data = response.json()
        assert data["pagination"] == {"page": 2, "limit": 20, "total": 45, "totalPages": 3}
        assert [i["id"] for i in data["data"]] == [r.id for r in records]

    def test_list_gallery_limit_clamped(self, client, mock_repository):
        response = client.get("/api/gallery?limit=1000")

        assert response.status_code == 200
        assert response.json()["pagination"]["limit"] == 100
        assert mock_repository.query.call_args.args[2] == 100

    @pytest.mark.parametrize(
        "query",
        [
            "limit=0",
            "limit=-5",
            "illust_id=abc",
            "visible=maybe",
            "page=99999999999999999999",
            "illust_id=99999999999999999999",
        ],
    )
    def test_list_gallery_invalid_input(self, client, mock_repository, query):
        response = client.get(f"/api/gallery?{query}")

        assert response.status_code == 400
        assert "error" in response.json()
        mock_repository.query.assert_not_called()

    def test_list_gallery_repository_error(self, client, mock_repository):
        mock_repository.query.side_effect = Exception("database down")

        response = client.get("/api/gallery")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch gallery data"}

    def test_list_gallery_signing_failure_degrades(self, client, mock_repository, mock_storage):
        """Test a failed URL resolution yields empty URLs, not an error."""
        mock_repository.query.return_value = GalleryQueryResult(
            records=[make_record(1)], total=1
        )
        mock_storage.presigned_get_url.side_effect = RuntimeError("signing failed")

        response = client.get("/api/gallery")

        assert response.status_code == 200
        item = response.json()["data"][0]
        assert item["displayUrl"] == ""
        assert item["downloadUrl"] == ""

    def test_list_gallery_no_database(self, client_no_deps):
        response = client_no_deps.get("/api/gallery")

        assert response.status_code == 503
        assert response.json() == {"error": "Database not available"}

    def test_get_gallery_item(self, client, mock_repository):
        mock_repository.get_image.return_value = make_record(3)

        response = client.get("/api/gallery/img-003")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == "img-003"
        assert data["displayUrl"]
        mock_repository.get_image.assert_called_once_with("img-003")

    def test_get_gallery_item_not_found(self, client):
        response = client.get("/api/gallery/missing")

        assert response.status_code == 404
        assert response.json() == {"error": "Image not found: missing"}

    def test_get_gallery_item_error(self, client, mock_repository):
        mock_repository.get_image.side_effect = Exception("database down")

        response = client.get("/api/gallery/img-001")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch image"}


class TestGalleryEndToEnd:
    """Gallery listing over a real SQLite repository."""

    @pytest.fixture
    def sqlite_client(self, mock_config, sqlite_repository, mock_storage):
        app = create_app(
            config=mock_config,
            repository=sqlite_repository,
            object_storage=mock_storage,
        )
        return TestClient(app)

    def test_visible_and_tags(self, sqlite_client, sqlite_repository):
        """Test only visible records carrying every requested tag match."""
        both = [TagEntry(name="landscape"), TagEntry(name="sunset")]
        sqlite_repository.save_image(make_record(1, tags=both))
        sqlite_repository.save_image(make_record(2, tags=list(both)))
        sqlite_repository.save_image(
            make_record(3, tags=[TagEntry(name="sunset"), TagEntry(name="landscape")])
        )
        sqlite_repository.save_image(make_record(4, tags=[TagEntry(name="landscape")]))
        sqlite_repository.save_image(make_record(5, visible=False, tags=list(both)))
        sqlite_repository.save_image(make_record(6, deleted=True, tags=list(both)))

        response = sqlite_client.get("/api/gallery?visible=true&tags=landscape,sunset")

        assert response.status_code == 200
        data = response.json()
        assert [i["id"] for i in data["data"]] == ["img-003", "img-002", "img-001"]
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["totalPages"] == 1
        for item in data["data"]:
            assert {"landscape", "sunset"} <= {t["name"] for t in item["tags"]}

    def test_author_search(self, sqlite_client, sqlite_repository):
        sqlite_repository.save_image(make_record(1, author="Annette"))
        sqlite_repository.save_image(make_record(2, author="Bob"))

        response = sqlite_client.get("/api/gallery?author=NNE")

        assert [i["id"] for i in response.json()["data"]] == ["img-001"]

    @pytest.mark.parametrize(
        "query", ["page=99999999999999999999", "illust_id=99999999999999999999"]
    )
    def test_oversized_numbers_are_client_errors(self, sqlite_client, sqlite_repository, query):
        sqlite_repository.save_image(make_record(1))

        response = sqlite_client.get(f"/api/gallery?{query}")

        assert response.status_code == 400
        assert "out of range" in response.json()["error"]

    def test_blank_author_id_is_no_filter(self, sqlite_client, sqlite_repository):
        sqlite_repository.save_image(make_record(1))
        sqlite_repository.save_image(make_record(2, author_id="7"))

        response = sqlite_client.get("/api/gallery?author_id=%20")

        assert response.json()["pagination"]["total"] == 2


# ============================================================
# Image URL Endpoint Tests
# ============================================================

class TestImageUrlEndpoint:
    """Tests for the image-url endpoint."""

    def test_get_image_url(self, client):
        response = client.get("/api/image-url?fileName=pixiv/2024/1_p0.jpg")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "pixiv/2024/1_p0.jpg" in data["data"]["displayUrl"]
        assert "filename%3D1_p0.jpg" in data["data"]["downloadUrl"]

    @pytest.mark.parametrize("query", ["", "?fileName=", "?fileName=%20"])
    def test_missing_file_name(self, client, mock_storage, query):
        response = client.get(f"/api/image-url{query}")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing fileName parameter"}
        mock_storage.object_size.assert_not_called()
        mock_storage.presigned_get_url.assert_not_called()

    def test_signing_error(self, client, mock_storage):
        mock_storage.presigned_get_url.side_effect = RuntimeError("signing failed")

        response = client.get("/api/image-url?fileName=a.jpg")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch image URL"}

    def test_works_without_database(self, mock_storage):
        """Test URL signing only needs object storage."""
        app = create_app(config=AppConfig(), object_storage=mock_storage)

        response = TestClient(app).get("/api/image-url?fileName=a.jpg")

        assert response.status_code == 200

    @pytest.mark.parametrize("query", ["", "?fileName=%20"])
    def test_missing_file_name_checked_before_storage(self, client_no_deps, query):
        """Test a bad request is reported even when storage is unavailable."""
        response = client_no_deps.get(f"/api/image-url{query}")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing fileName parameter"}

    def test_no_storage(self, client_no_deps):
        response = client_no_deps.get("/api/image-url?fileName=a.jpg")

        assert response.status_code == 503
        assert response.json() == {"error": "Image storage not available"}


# ============================================================
# Authentication Tests
# ============================================================

class TestAuthentication:
    """Tests for bearer authentication on protected routes."""

    @pytest.mark.parametrize("path", ["/api/gallery", "/api/image-url?fileName=a.jpg"])
    def test_missing_credentials(self, auth_client, path):
        response = auth_client.get(path)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized, please log in"}

    def test_wrong_scheme(self, auth_client):
        response = auth_client.get(
            "/api/gallery", headers={"Authorization": f"Basic {_token()}"}
        )

        assert response.status_code == 401

    def test_invalid_token(self, auth_client, mock_repository):
        response = auth_client.get(
            "/api/gallery", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}
        mock_repository.query.assert_not_called()

    def test_token_signed_with_other_secret(self, auth_client):
        token = _token(secret="another-secret-that-is-also-long-enough-1234")

        response = auth_client.get("/api/gallery", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_expired_token(self, auth_client):
        expired = datetime.now(tz=timezone.utc) - timedelta(minutes=5)
        token = _token(exp=expired)

        response = auth_client.get("/api/gallery", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_valid_token(self, auth_client):
        response = auth_client.get(
            "/api/gallery", headers={"Authorization": f"Bearer {_token()}"}
        )

        assert response.status_code == 200

    def test_valid_token_image_url(self, auth_client):
        response = auth_client.get(
            "/api/image-url?fileName=a.jpg",
            headers={"Authorization": f"Bearer {_token()}"},
        )

        assert response.status_code == 200

    def test_health_is_public(self, auth_client):
        assert auth_client.get("/api/health").status_code == 200

    def test_per_route_policy(self, mock_repository, mock_storage):
        """Test the gallery can be protected while image-url stays open."""
        config = AppConfig(auth=AuthConfig(require_for_gallery=True, jwt_secret=JWT_SECRET))
        app = create_app(
            config=config,
            repository=mock_repository,
            object_storage=mock_storage,
            auth_verifier=JWTAuthVerifier(JWT_SECRET),
        )
        test_client = TestClient(app)

        assert test_client.get("/api/gallery").status_code == 401
        assert test_client.get("/api/image-url?fileName=a.jpg").status_code == 200

    def test_no_verifier_configured(self, auth_config, mock_repository, mock_storage):
        app = create_app(
            config=auth_config,
            repository=mock_repository,
            object_storage=mock_storage,
        )

        response = TestClient(app).get(
            "/api/gallery", headers={"Authorization": f"Bearer {_token()}"}
        )

        assert response.status_code == 503
        assert response.json() == {"error": "Authentication not available"}


# ============================================================
# Dependency Injection Tests
# ============================================================

class TestDependencyInjection:
    """Tests for dependency injection."""

    def test_app_state_initialized(self, mock_config, mock_repository, mock_storage):
        """Test app state is properly initialized."""
        app = create_app(
            config=mock_config,
            repository=mock_repository,
            object_storage=mock_storage,
        )

        assert app.state.app_state is not None
        assert app.state.app_state.config is mock_config
        assert app.state.app_state.repository is mock_repository
        assert app.state.app_state.object_storage is mock_storage
        assert app.state.app_state.auth_verifier is None

    def test_app_without_deps(self):
        """Test app can be created without dependencies."""
        app = create_app()

        assert app.state.app_state is not None
        assert app.state.app_state.is_configured is False

    def test_version_from_config(self):
        """Test version is taken from config."""
        config = AppConfig(app=AppSettings(version="9.9.9"))
        app = create_app(config=config)

        assert app.version == "9.9.9"
        response = TestClient(app).get("/api/health")
        assert response.json()["version"] == "9.9.9"
