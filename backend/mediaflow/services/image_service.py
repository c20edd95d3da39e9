"""
Image variant service.

Stores originals with resized variants and serves them back:
- originals live at {origin_folder}/{image_id}
- variants live at {thumb_folder}/{base}_{width}.{ext}

Decoding and resizing are CPU-bound, so Pillow work runs in a worker
thread via asyncio.to_thread.
"""
import asyncio
import io
import logging
import posixpath
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from mediaflow.errors import BadRequest, MimeNotAllowed, NotFound, StorageError
from mediaflow.profiles import Profile, ProfileConfig
from mediaflow.storage.base import BlobStorage, ObjectNotFound
from mediaflow.utils import metrics

logger = logging.getLogger(__name__)

# convert_to value -> (Pillow format, content type, file extension)
OUTPUT_FORMATS = {
    "jpeg": ("JPEG", "image/jpeg", "jpg"),
    "jpg": ("JPEG", "image/jpeg", "jpg"),
    "png": ("PNG", "image/png", "png"),
    "webp": ("WEBP", "image/webp", "webp"),
}

_SOURCE_FORMATS = {"JPEG": "jpeg", "PNG": "png", "WEBP": "webp"}


def detect_mime(data: bytes) -> Optional[str]:
    """Sniff the image MIME type from its bytes, or None if not an image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError):
        return None


def _output_format(convert_to: str, source_format: Optional[str]) -> Tuple[str, str, str]:
    name = convert_to.lower().lstrip(".")
    if not name and source_format:
        name = _SOURCE_FORMATS.get(source_format, "")
    # Unknown formats fall back to JPEG
    return OUTPUT_FORMATS.get(name, OUTPUT_FORMATS["jpeg"])


def variant_extension(profile: Profile, image_id: str) -> str:
    if profile.convert_to:
        return _output_format(profile.convert_to, None)[2]
    ext = posixpath.splitext(image_id)[1].lstrip(".")
    return ext or "jpg"


def variant_key(profile: Profile, image_id: str, width: int) -> str:
    """Storage key of the variant of image_id at the given width."""
    base = posixpath.splitext(image_id)[0]
    ext = variant_extension(profile, image_id)
    return f"{profile.thumb_folder}/{base}_{width}.{ext}"


def original_key(profile: Profile, image_id: str) -> str:
    return f"{profile.origin_folder}/{image_id}"


def generate_thumbnail(data: bytes, width: int, quality: int, convert_to: str) -> Tuple[bytes, str]:
    """
    Resize an image to width (keeping aspect ratio) and encode it.

    Returns:
        Tuple of (encoded bytes, content type)
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            fmt, content_type, _ = _output_format(convert_to, img.format)

            height = max(1, round(img.height * width / img.width))
            resized = img.resize((width, height), Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, OSError) as e:
        raise BadRequest(f"failed to decode image: {e}") from e

    if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
        resized = resized.convert("RGB")

    buf = io.BytesIO()
    if fmt == "PNG":
        resized.save(buf, format=fmt)
    else:
        resized.save(buf, format=fmt, quality=quality)
    return buf.getvalue(), content_type


class ImageService:
    """Uploads originals with their variants and serves them back."""

    def __init__(self, storage: BlobStorage, profiles: ProfileConfig):
        self.storage = storage
        self.profiles = profiles

    async def upload_image(self, image_type: str, image_id: str, data: bytes) -> list[str]:
        """
        Store an original image and one variant per configured size.

        Returns:
            Storage keys written, original first
        """
        profile = self.profiles.get_image_profile(image_type)

        mime = await asyncio.to_thread(detect_mime, data)
        if mime is None or mime not in profile.allowed_mimes:
            raise MimeNotAllowed(f"mime type not allowed: {mime or 'unknown'}")

        keys = [original_key(profile, image_id)]
        await self._put(keys[0], data, mime)

        for width in profile.sizes:
            thumbnail, content_type = await asyncio.to_thread(
                generate_thumbnail, data, width, profile.quality, profile.convert_to
            )
            key = variant_key(profile, image_id, width)
            await self._put(key, thumbnail, content_type)
            metrics.image_variants_generated_total.labels(source="upload").inc()
            keys.append(key)

        logger.info(
            f"Stored image {image_id} with {len(profile.sizes)} variants",
            extra={"event": "image_uploaded", "image_type": image_type, "object_key": keys[0]},
        )
        return keys

    async def get_thumbnail(
        self, image_type: str, image_id: str, width: Optional[int] = None
    ) -> Tuple[bytes, str]:
        """
        Return a stored variant, resizing the original on the fly if the
        variant has not been generated yet.

        Raises:
            BadRequest: width is not a configured size
            NotFound: neither the variant nor the original exists
        """
        profile = self.profiles.get_image_profile(image_type)
        if width is None:
            width = profile.variant_width
        if profile.sizes and width not in profile.sizes:
            allowed = ", ".join(str(s) for s in profile.sizes)
            raise BadRequest(f"width must be one of: {allowed}")

        key = variant_key(profile, image_id, width)
        try:
            data = await self._get(key)
            return data, _output_format(variant_extension(profile, image_id), None)[1]
        except ObjectNotFound:
            logger.debug(f"Variant {key} missing, resizing original")

        try:
            original = await self._get(original_key(profile, image_id))
        except ObjectNotFound as e:
            raise NotFound(f"image not found: {image_id}") from e

        metrics.image_variants_generated_total.labels(source="on_demand").inc()
        return await asyncio.to_thread(
            generate_thumbnail, original, width, profile.quality, profile.convert_to
        )

    async def get_original(self, image_type: str, image_id: str) -> Tuple[bytes, str]:
        profile = self.profiles.get_image_profile(image_type)
        try:
            data = await self._get(original_key(profile, image_id))
        except ObjectNotFound as e:
            raise NotFound(f"image not found: {image_id}") from e

        mime = await asyncio.to_thread(detect_mime, data)
        return data, mime or "application/octet-stream"

    async def _get(self, key: str) -> bytes:
        try:
            return await self.storage.get_object(key)
        except ObjectNotFound:
            raise
        except Exception as e:
            metrics.storage_errors_total.labels(operation="get_object").inc()
            raise StorageError("get object", e) from e

    async def _put(self, key: str, body: bytes, content_type: str) -> None:
        try:
            await self.storage.put_object(key, body, content_type)
        except Exception as e:
            metrics.storage_errors_total.labels(operation="put_object").inc()
            raise StorageError("put object", e) from e
