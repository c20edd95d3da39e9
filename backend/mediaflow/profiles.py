"""
Upload profile configuration.

Profiles are named policy bundles read from YAML, either from a local file or
from the bucket itself (s3://bucket/key):

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

The configuration is read once at startup and never mutated afterwards.
"""
import logging
import re
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from mediaflow.errors import ConfigError
from mediaflow.storage.base import BlobStorage

logger = logging.getLogger(__name__)

# Placeholders understood by the object key builder
KNOWN_PLACEHOLDERS = {"key_base", "ext", "shard", "shard?"}

_PLACEHOLDER_RE = re.compile(r"\{([^{}]*)\}")

DEFAULT_PROFILE_NAME = "default"


class Profile(BaseModel):
    """Upload and image-variant policy for one profile."""

    kind: Literal["image", "video"]
    allowed_mimes: list[str] = Field(default_factory=list)
    size_max_bytes: int = Field(..., gt=0)
    multipart_threshold_mb: int = Field(15, ge=0)
    part_size_mb: int = Field(8, gt=0)
    token_ttl_seconds: int = Field(900, gt=0)
    storage_path: str
    enable_sharding: bool = False

    # Image variants
    origin_folder: str = "originals"
    thumb_folder: str = "thumbnails"
    sizes: list[int] = Field(default_factory=lambda: [256, 512, 1024])
    default_size: Optional[int] = None
    quality: int = Field(90, ge=1, le=100)
    convert_to: str = ""

    @field_validator("storage_path")
    @classmethod
    def _check_template(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("storage_path must not be empty")
        unknown = sorted(set(_PLACEHOLDER_RE.findall(value)) - KNOWN_PLACEHOLDERS)
        if unknown:
            raise ValueError(
                f"storage_path has unknown placeholders: {', '.join(unknown)}"
            )
        return value

    @property
    def part_size_bytes(self) -> int:
        return self.part_size_mb * 1024 * 1024

    @property
    def variant_width(self) -> int:
        """Width served when the client does not ask for one."""
        if self.default_size:
            return self.default_size
        return self.sizes[0] if self.sizes else 256


def default_image_profile() -> Profile:
    """Built-in fallback used by the image endpoints when nothing is configured."""
    return Profile(
        kind="image",
        allowed_mimes=["image/jpeg", "image/png"],
        size_max_bytes=20 * 1024 * 1024,
        storage_path="originals/{key_base}.{ext}",
        sizes=[256, 512, 1024],
        quality=90,
    )


class ProfileConfig(BaseModel):
    """All configured profiles, keyed by name."""

    profiles: dict[str, Profile] = Field(default_factory=dict)

    def get_profile(self, name: str) -> Optional[Profile]:
        return self.profiles.get(name)

    def get_image_profile(self, image_type: str) -> Profile:
        """Profile for an image type, falling back to "default" then built-ins."""
        profile = self.profiles.get(image_type) or self.profiles.get(DEFAULT_PROFILE_NAME)
        return profile or default_image_profile()


def parse_profile_config(text: str) -> ProfileConfig:
    """Parse and validate YAML profile configuration."""
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse storage config: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError("storage config must be a mapping")

    try:
        return ProfileConfig(profiles=raw.get("profiles") or {})
    except ValidationError as e:
        raise ConfigError(f"invalid storage config: {e}") from e


async def load_profile_config(
    path: str,
    storage: Optional[BlobStorage] = None,
    bucket: Optional[str] = None,
) -> ProfileConfig:
    """
    Load profiles from a local path or from s3://bucket/key.

    Args:
        path: File path or s3:// URI
        storage: Storage used for s3:// paths
        bucket: Configured bucket; an s3:// path must point at it

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    if path.startswith("s3://"):
        s3_path = path[len("s3://"):]
        path_bucket, _, key = s3_path.partition("/")
        if path_bucket != bucket:
            raise ConfigError(f"bucket mismatch: {path_bucket} != {bucket}")
        if storage is None:
            raise ConfigError("storage client required to load config from S3")
        try:
            data = await storage.get_object(key)
        except Exception as e:
            raise ConfigError(f"failed to get storage config from S3: {e}") from e
        logger.info(f"Loaded storage config from S3: {key}")
        text = data.decode("utf-8")
    else:
        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(f"failed to read storage config: {e}") from e

    config = parse_profile_config(text)
    logger.info(f"Loaded {len(config.profiles)} upload profiles")
    return config
