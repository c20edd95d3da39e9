"""
Test configuration and fixtures.
Uses an in-memory fake in place of S3, injected through FastAPI dependency overrides.
"""
import io
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["S3_BUCKET"] = "test-bucket"

import pytest
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from PIL import Image

from mediaflow.config import settings
from mediaflow.profiles import Profile, ProfileConfig
from mediaflow.storage.base import ObjectNotFound, PartInfo

MIB = 1024 * 1024
TEST_API_KEY = "test-api-key"


class FakeStorage:
    """In-memory ObjectStorage + BlobStorage that records every call."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.upload_id = "test-upload-id"
        self.fail_operations: dict[str, Exception] = {}
        self.fail_parts: set[int] = set()
        self.completed: list[tuple[str, str, list[PartInfo]]] = []
        self.aborted: list[tuple[str, str]] = []

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_operations.get(operation)
        if error is not None:
            raise error

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def presign_put(self, key, expires_in, headers):
        self.calls.append(("presign_put", key, expires_in, dict(headers)))
        self._maybe_fail("presign_put")
        return f"https://test.s3.amazonaws.com/test-bucket/{key}"

    async def create_multipart_upload(self, key, headers):
        self.calls.append(("create_multipart_upload", key, dict(headers)))
        self._maybe_fail("create_multipart_upload")
        return self.upload_id

    async def presign_upload_part(self, key, upload_id, part_number, expires_in):
        self.calls.append(("presign_upload_part", key, upload_id, part_number, expires_in))
        if part_number in self.fail_parts:
            raise RuntimeError(f"AccessDenied for part {part_number}")
        return (
            f"https://test.s3.amazonaws.com/test-bucket/{key}"
            f"?partNumber={part_number}&uploadId={upload_id}"
        )

    async def complete_multipart_upload(self, key, upload_id, parts):
        self.calls.append(("complete_multipart_upload", key, upload_id, list(parts)))
        self._maybe_fail("complete_multipart_upload")
        self.completed.append((key, upload_id, list(parts)))

    async def abort_multipart_upload(self, key, upload_id):
        self.calls.append(("abort_multipart_upload", key, upload_id))
        self._maybe_fail("abort_multipart_upload")
        self.aborted.append((key, upload_id))

    async def get_object(self, key):
        self.calls.append(("get_object", key))
        self._maybe_fail("get_object")
        if key not in self.objects:
            raise ObjectNotFound(key)
        return self.objects[key]

    async def put_object(self, key, body, content_type):
        self.calls.append(("put_object", key, content_type))
        self._maybe_fail("put_object")
        self.objects[key] = body
        self.content_types[key] = content_type


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def profile_config() -> ProfileConfig:
    """Profiles mirroring a typical storage-config.yaml."""
    return ProfileConfig(profiles={
        "avatar": Profile(
            kind="image",
            allowed_mimes=["image/jpeg", "image/png"],
            size_max_bytes=5 * MIB,
            multipart_threshold_mb=15,
            part_size_mb=8,
            token_ttl_seconds=900,
            storage_path="originals/{shard?}/{key_base}.{ext}",
            enable_sharding=True,
        ),
        "photo": Profile(
            kind="image",
            allowed_mimes=["image/jpeg"],
            size_max_bytes=5 * MIB,
            multipart_threshold_mb=15,
            part_size_mb=8,
            token_ttl_seconds=900,
            storage_path="originals/{key_base}.{ext}",
            enable_sharding=False,
        ),
        "video": Profile(
            kind="video",
            allowed_mimes=["video/mp4"],
            size_max_bytes=100 * MIB,
            multipart_threshold_mb=15,
            part_size_mb=8,
            token_ttl_seconds=900,
            storage_path="originals/{key_base}.{ext}",
            enable_sharding=False,
        ),
        "default": Profile(
            kind="image",
            allowed_mimes=["image/jpeg", "image/png"],
            size_max_bytes=20 * MIB,
            storage_path="originals/{key_base}.{ext}",
            sizes=[64, 128],
            quality=80,
            convert_to="webp",
        ),
    })


def make_image_bytes(fmt: str = "JPEG", size: tuple = (400, 200), color: str = "red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


def get_test_app(storage: FakeStorage, profiles: ProfileConfig) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from mediaflow.main import app
    from mediaflow.dependencies import get_storage, get_profile_config

    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_profile_config] = lambda: profiles

    # Read directly by the health endpoint
    app.state.storage = storage
    app.state.profile_config = profiles

    return app


def _reset_app(app: FastAPI) -> None:
    app.dependency_overrides.clear()
    for attr in ("storage", "profile_config"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)


@pytest.fixture
def api_key(monkeypatch) -> str:
    """Require the test API key on protected endpoints."""
    monkeypatch.setattr(settings, "api_key", TEST_API_KEY)
    return TEST_API_KEY


async def _client(
    storage: FakeStorage, profiles: ProfileConfig, headers: Optional[dict] = None
) -> AsyncGenerator[AsyncClient, None]:
    app = get_test_app(storage, profiles)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", headers=headers) as ac:
        yield ac

    # Clean up overrides
    _reset_app(app)


@pytest.fixture(scope="function")
async def client(
    fake_storage: FakeStorage, profile_config: ProfileConfig, api_key: str
) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated async HTTP client for API testing."""
    async for ac in _client(fake_storage, profile_config, {"X-API-Key": api_key}):
        yield ac


@pytest.fixture(scope="function")
async def anon_client(
    fake_storage: FakeStorage, profile_config: ProfileConfig, api_key: str
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client that sends no credentials."""
    async for ac in _client(fake_storage, profile_config):
        yield ac
