"""
Storage capability protocols.

The upload engine depends only on ObjectStorage; the image endpoints also
need BlobStorage. S3Storage implements both.
"""
from dataclasses import dataclass
from typing import Protocol


class ObjectNotFound(Exception):
    """Raised by get_object when the key does not exist."""

    def __init__(self, key: str):
        super().__init__(f"object not found: {key}")
        self.key = key


@dataclass(frozen=True)
class PartInfo:
    """A part registered by the storage backend, echoed back on completion."""

    part_number: int
    etag: str


class ObjectStorage(Protocol):
    """Presigning and multipart session operations."""

    async def presign_put(self, key: str, expires_in: int, headers: dict[str, str]) -> str:
        ...

    async def create_multipart_upload(self, key: str, headers: dict[str, str]) -> str:
        """Start a multipart session and return its upload id."""
        ...

    async def presign_upload_part(
        self, key: str, upload_id: str, part_number: int, expires_in: int
    ) -> str:
        ...

    async def complete_multipart_upload(
        self, key: str, upload_id: str, parts: list[PartInfo]
    ) -> None:
        ...

    async def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        ...


class BlobStorage(Protocol):
    """Plain object reads and writes."""

    async def get_object(self, key: str) -> bytes:
        """Return the object body or raise ObjectNotFound."""
        ...

    async def put_object(self, key: str, body: bytes, content_type: str) -> None:
        ...
