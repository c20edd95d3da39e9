"""
Tests for the boto3 storage wrapper and profile loading.
"""
import pytest
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

from botocore.exceptions import ClientError

from mediaflow.errors import ConfigError
from mediaflow.profiles import load_profile_config
from mediaflow.storage.base import ObjectNotFound, PartInfo
from mediaflow.storage.s3_client import S3Storage

PROFILE_YAML = """
profiles:
  avatar:
    kind: image
    allowed_mimes: [image/jpeg]
    size_max_bytes: 5242880
    storage_path: "originals/{shard?}/{key_base}.{ext}"
    enable_sharding: true
"""


@pytest.fixture
def boto_client() -> MagicMock:
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://signed.example.com/url"
    client.create_multipart_upload.return_value = {"UploadId": "upload-1"}
    return client


@pytest.fixture
def s3_storage(boto_client) -> S3Storage:
    return S3Storage(bucket="test-bucket", client=boto_client)


class TestS3Storage:
    """Tests for S3Storage parameter mapping."""

    @pytest.mark.asyncio
    async def test_presign_put_signs_headers(self, s3_storage, boto_client):
        url = await s3_storage.presign_put(
            "originals/a.jpg", 900, {"Content-Type": "image/jpeg", "If-None-Match": "*"}
        )

        assert url == "https://signed.example.com/url"
        boto_client.generate_presigned_url.assert_called_once_with(
            ClientMethod="put_object",
            Params={
                "Bucket": "test-bucket",
                "Key": "originals/a.jpg",
                "ContentType": "image/jpeg",
                "IfNoneMatch": "*",
            },
            ExpiresIn=900,
        )

    @pytest.mark.asyncio
    async def test_presign_put_with_real_client(self):
        """Test botocore accepts IfNoneMatch on PutObject and signs it."""
        storage = S3Storage(
            bucket="test-bucket", region="us-east-1", access_key="AKIDEXAMPLE", secret_key="secret"
        )

        url = await storage.presign_put(
            "originals/a.jpg", 60, {"Content-Type": "image/jpeg", "If-None-Match": "*"}
        )

        query = parse_qs(urlparse(url).query)
        signed_headers = query["X-Amz-SignedHeaders"][0].split(";")
        assert "if-none-match" in signed_headers
        assert "content-type" in signed_headers
        assert query["X-Amz-Expires"] == ["60"]

    @pytest.mark.asyncio
    async def test_create_multipart_upload(self, s3_storage, boto_client):
        upload_id = await s3_storage.create_multipart_upload("v.mp4", {"Content-Type": "video/mp4"})

        assert upload_id == "upload-1"
        boto_client.create_multipart_upload.assert_called_once_with(
            Bucket="test-bucket", Key="v.mp4", ContentType="video/mp4"
        )

    @pytest.mark.asyncio
    async def test_presign_upload_part(self, s3_storage, boto_client):
        await s3_storage.presign_upload_part("v.mp4", "upload-1", 3, 600)

        boto_client.generate_presigned_url.assert_called_once_with(
            ClientMethod="upload_part",
            Params={"Bucket": "test-bucket", "Key": "v.mp4", "UploadId": "upload-1", "PartNumber": 3},
            ExpiresIn=600,
        )

    @pytest.mark.asyncio
    async def test_complete_passes_etags_verbatim(self, s3_storage, boto_client):
        await s3_storage.complete_multipart_upload(
            "v.mp4", "upload-1", [PartInfo(1, '"a"'), PartInfo(2, '"b"')]
        )

        boto_client.complete_multipart_upload.assert_called_once_with(
            Bucket="test-bucket",
            Key="v.mp4",
            UploadId="upload-1",
            MultipartUpload={"Parts": [
                {"ETag": '"a"', "PartNumber": 1},
                {"ETag": '"b"', "PartNumber": 2},
            ]},
        )

    @pytest.mark.asyncio
    async def test_abort(self, s3_storage, boto_client):
        await s3_storage.abort_multipart_upload("v.mp4", "upload-1")
        boto_client.abort_multipart_upload.assert_called_once_with(
            Bucket="test-bucket", Key="v.mp4", UploadId="upload-1"
        )

    @pytest.mark.asyncio
    async def test_get_object(self, s3_storage, boto_client):
        body = MagicMock()
        body.read.return_value = b"payload"
        boto_client.get_object.return_value = {"Body": body}

        assert await s3_storage.get_object("k") == b"payload"
        body.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_object_missing(self, s3_storage, boto_client):
        boto_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )
        with pytest.raises(ObjectNotFound):
            await s3_storage.get_object("k")

    @pytest.mark.asyncio
    async def test_get_object_other_error_propagates(self, s3_storage, boto_client):
        boto_client.get_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "GetObject"
        )
        with pytest.raises(ClientError):
            await s3_storage.get_object("k")


class TestLoadProfileConfig:
    """Tests for loading profiles from disk or from the bucket."""

    @pytest.mark.asyncio
    async def test_load_local_file(self, tmp_path):
        path = tmp_path / "storage-config.yaml"
        path.write_text(PROFILE_YAML)

        config = await load_profile_config(str(path))

        assert config.get_profile("avatar").enable_sharding is True

    @pytest.mark.asyncio
    async def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            await load_profile_config(str(tmp_path / "absent.yaml"))

    @pytest.mark.asyncio
    async def test_load_from_bucket(self, fake_storage):
        fake_storage.objects["config/storage.yaml"] = PROFILE_YAML.encode("utf-8")

        config = await load_profile_config(
            "s3://test-bucket/config/storage.yaml", storage=fake_storage, bucket="test-bucket"
        )

        assert list(config.profiles) == ["avatar"]

    @pytest.mark.asyncio
    async def test_load_from_other_bucket_rejected(self, fake_storage):
        with pytest.raises(ConfigError) as exc_info:
            await load_profile_config(
                "s3://other-bucket/storage.yaml", storage=fake_storage, bucket="test-bucket"
            )
        assert "bucket mismatch" in str(exc_info.value)
        assert fake_storage.calls == []

    @pytest.mark.asyncio
    async def test_load_from_bucket_missing_object(self, fake_storage):
        with pytest.raises(ConfigError):
            await load_profile_config(
                "s3://test-bucket/storage.yaml", storage=fake_storage, bucket="test-bucket"
            )
