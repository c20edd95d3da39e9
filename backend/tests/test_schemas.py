"""
Tests for Pydantic schemas and profile configuration validation.
"""
import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from mediaflow.errors import ConfigError
from mediaflow.profiles import Profile, ProfileConfig, parse_profile_config
from mediaflow.schemas.upload import (
    CompletedPart,
    CompleteMultipartRequest,
    PresignRequest,
    SingleUpload,
    UploadDetails,
    UploadPlan,
)


class TestPresignSchemas:
    """Tests for presign request/response schemas."""

    def test_presign_request_defaults(self):
        """Test omitted fields fall back to empty values and auto mode."""
        schema = PresignRequest()
        assert schema.key_base == ""
        assert schema.size_bytes == 0
        assert schema.multipart == "auto"
        assert schema.shard is None

    def test_presign_request_valid(self):
        """Test a complete presign request."""
        schema = PresignRequest(
            key_base="user-123-avatar",
            ext="jpg",
            mime="image/jpeg",
            size_bytes=1048576,
            kind="image",
            profile="avatar",
        )
        assert schema.profile == "avatar"
        assert schema.size_bytes == 1048576

    def test_presign_request_size_must_be_integer(self):
        """Test non-numeric size is rejected."""
        with pytest.raises(ValidationError):
            PresignRequest(size_bytes="lots")

    def test_upload_plan_excludes_missing_variant(self):
        """Test only the chosen upload variant is serialized."""
        plan = UploadPlan(
            object_key="originals/a.jpg",
            upload=UploadDetails(
                single=SingleUpload(
                    method="PUT",
                    url="https://example.com/a.jpg",
                    headers={"Content-Type": "image/jpeg"},
                    expires_at=datetime.now(timezone.utc),
                )
            ),
        )
        data = plan.model_dump(exclude_none=True)
        assert "single" in data["upload"]
        assert "multipart" not in data["upload"]


class TestCompleteSchemas:
    """Tests for multipart completion schemas."""

    def test_completed_part_valid(self):
        part = CompletedPart(part_number=1, etag='"abc"')
        assert part.etag == '"abc"'

    def test_completed_part_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            CompletedPart(part_number=0, etag="abc")

    def test_completed_part_requires_etag(self):
        with pytest.raises(ValidationError):
            CompletedPart(part_number=1, etag="")

    def test_complete_request_parts_default_empty(self):
        """Test missing parts parses to an empty list (rejected later by the service)."""
        assert CompleteMultipartRequest().parts == []


class TestProfileSchemas:
    """Tests for Profile and YAML profile parsing."""

    def test_profile_defaults(self):
        profile = Profile(kind="video", size_max_bytes=100, storage_path="v/{key_base}.{ext}")
        assert profile.multipart_threshold_mb == 15
        assert profile.part_size_mb == 8
        assert profile.part_size_bytes == 8 * 1024 * 1024
        assert profile.token_ttl_seconds == 900
        assert profile.enable_sharding is False

    def test_profile_rejects_unknown_kind(self):
        with pytest.raises(ValidationError):
            Profile(kind="audio", size_max_bytes=100, storage_path="{key_base}")

    def test_profile_rejects_empty_storage_path(self):
        with pytest.raises(ValidationError):
            Profile(kind="image", size_max_bytes=100, storage_path="  ")

    def test_profile_rejects_unknown_placeholder(self):
        with pytest.raises(ValidationError) as exc_info:
            Profile(kind="image", size_max_bytes=100, storage_path="{user}/{key_base}.{ext}")
        assert "user" in str(exc_info.value)

    def test_profile_rejects_zero_part_size(self):
        with pytest.raises(ValidationError):
            Profile(kind="image", size_max_bytes=100, part_size_mb=0, storage_path="{key_base}")

    def test_variant_width_prefers_default_size(self):
        profile = Profile(
            kind="image", size_max_bytes=100, storage_path="{key_base}", sizes=[64, 128], default_size=128
        )
        assert profile.variant_width == 128

    def test_parse_profile_config(self):
        """Test parsing a YAML document with several profiles."""
        config = parse_profile_config(
            """
profiles:
  avatar:
    kind: image
    allowed_mimes: [image/jpeg, image/png]
    size_max_bytes: 5242880
    multipart_threshold_mb: 15
    part_size_mb: 8
    token_ttl_seconds: 900
    storage_path: "originals/{shard?}/{key_base}.{ext}"
    enable_sharding: true
  video:
    kind: video
    allowed_mimes: [video/mp4]
    size_max_bytes: 104857600
    storage_path: "videos/{key_base}.{ext}"
"""
        )
        assert set(config.profiles) == {"avatar", "video"}
        assert config.get_profile("avatar").enable_sharding is True
        assert config.get_profile("video").part_size_mb == 8
        assert config.get_profile("missing") is None

    def test_parse_empty_document(self):
        assert parse_profile_config("").profiles == {}

    def test_parse_invalid_yaml(self):
        with pytest.raises(ConfigError):
            parse_profile_config("profiles: [unclosed")

    def test_parse_non_mapping(self):
        with pytest.raises(ConfigError):
            parse_profile_config("- just\n- a list\n")

    def test_parse_invalid_profile(self):
        with pytest.raises(ConfigError):
            parse_profile_config("profiles:\n  bad:\n    kind: image\n    storage_path: x\n")

    def test_image_profile_fallback(self):
        """Test unknown image types use "default", then the built-in profile."""
        default = Profile(kind="image", size_max_bytes=100, storage_path="{key_base}", sizes=[32])
        config = ProfileConfig(profiles={"default": default})
        assert config.get_image_profile("unknown").sizes == [32]
        assert ProfileConfig().get_image_profile("unknown").sizes == [256, 512, 1024]
