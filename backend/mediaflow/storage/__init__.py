"""
Storage module for S3-compatible object storage.

Clients upload directly to the bucket using presigned URLs.
The API never receives upload bytes, except for image variant uploads.
"""
from mediaflow.storage.base import BlobStorage, ObjectNotFound, ObjectStorage, PartInfo
from mediaflow.storage.s3_client import S3Storage, get_s3_storage

__all__ = [
    "ObjectStorage",
    "BlobStorage",
    "ObjectNotFound",
    "PartInfo",
    "S3Storage",
    "get_s3_storage",
]
