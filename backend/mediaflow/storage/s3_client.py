"""
S3-compatible storage client.

Uses boto3 against AWS S3, MinIO, R2 or any other S3-compatible backend.
Clients upload directly to the bucket with presigned URLs, so the API never
proxies upload bytes.

boto3 is blocking; every call is pushed to a worker thread with
asyncio.to_thread so the event loop keeps serving other requests while
many parts are presigned concurrently.
"""
import asyncio
import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from mediaflow.config import settings
from mediaflow.storage.base import ObjectNotFound, PartInfo

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# Header name -> boto3 parameter name for put_object / create_multipart_upload
_HEADER_PARAMS = {
    "Content-Type": "ContentType",
    "If-None-Match": "IfNoneMatch",
}


def _header_params(headers: dict[str, str], allowed: tuple[str, ...]) -> dict[str, str]:
    return {
        _HEADER_PARAMS[name]: value
        for name, value in headers.items()
        if name in allowed
    }


class S3Storage:
    """
    boto3-backed implementation of ObjectStorage and BlobStorage.

    Errors from boto3 are not caught here; the upload service wraps them
    with the name of the failed operation.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket

        if client is not None:
            self._client = client
            return

        client_kwargs = {"region_name": region}
        if access_key and secret_key:
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key
        else:
            # Falls back to the default credential chain (env, ECS task role, ...)
            logger.info("No static S3 credentials configured, using default credential chain")

        if endpoint:
            # Custom endpoints (MinIO, R2) need path-style addressing
            client_kwargs["endpoint_url"] = endpoint
            client_kwargs["config"] = Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            )
        else:
            client_kwargs["config"] = Config(signature_version="s3v4")

        self._client = boto3.client("s3", **client_kwargs)
        logger.info(f"S3 client initialized for bucket: {bucket}")

    async def presign_put(self, key: str, expires_in: int, headers: dict[str, str]) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        params.update(_header_params(headers, ("Content-Type", "If-None-Match")))

        url = await asyncio.to_thread(
            self._client.generate_presigned_url,
            ClientMethod="put_object",
            Params=params,
            ExpiresIn=expires_in,
        )
        logger.debug(f"Generated presigned PUT URL for {key}")
        return url

    async def create_multipart_upload(self, key: str, headers: dict[str, str]) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        params.update(_header_params(headers, ("Content-Type",)))

        response = await asyncio.to_thread(self._client.create_multipart_upload, **params)
        upload_id = response["UploadId"]
        logger.debug(f"Created multipart upload {upload_id} for {key}")
        return upload_id

    async def presign_upload_part(
        self, key: str, upload_id: str, part_number: int, expires_in: int
    ) -> str:
        return await asyncio.to_thread(
            self._client.generate_presigned_url,
            ClientMethod="upload_part",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "UploadId": upload_id,
                "PartNumber": part_number,
            },
            ExpiresIn=expires_in,
        )

    async def complete_multipart_upload(
        self, key: str, upload_id: str, parts: list[PartInfo]
    ) -> None:
        # ETags are passed exactly as the client received them (quotes included)
        await asyncio.to_thread(
            self._client.complete_multipart_upload,
            Bucket=self.bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [{"ETag": p.etag, "PartNumber": p.part_number} for p in parts]
            },
        )

    async def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        await asyncio.to_thread(
            self._client.abort_multipart_upload,
            Bucket=self.bucket,
            Key=key,
            UploadId=upload_id,
        )

    async def get_object(self, key: str) -> bytes:
        def _read() -> bytes:
            try:
                response = self._client.get_object(Bucket=self.bucket, Key=key)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                    raise ObjectNotFound(key) from e
                raise
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()

        return await asyncio.to_thread(_read)

    async def put_object(self, key: str, body: bytes, content_type: str) -> None:
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )
        logger.debug(f"Stored {key} ({len(body)} bytes)")


# Singleton instance
_storage: Optional[S3Storage] = None


def get_s3_storage() -> S3Storage:
    """
    Get the singleton S3 storage instance built from settings.

    Returns:
        S3Storage instance
    """
    global _storage
    if _storage is None:
        _storage = S3Storage(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            endpoint=settings.s3_endpoint,
            access_key=settings.aws_access_key_id,
            secret_key=settings.aws_secret_access_key,
        )
    return _storage
