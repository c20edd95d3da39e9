"""
Presigned upload service.

Turns a presign request into an upload plan and relays multipart
completion/abort to storage.

Flow:
1. Client requests a plan with key_base, ext, mime, size_bytes, kind, profile
2. Request is validated against the profile (no storage call on failure)
3. Object key is built from the profile template (optionally sharded)
4. Single PUT or multipart is chosen from the size and multipart mode
5. Storage presigns the PUT, or creates a multipart session and presigns
   every part
6. Client uploads directly to storage, then calls complete (or abort) on
   this API with the object key and upload id from the plan

Nothing is stored server-side between steps 5 and 6: the object key and
upload id travel with the client.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

from mediaflow.errors import BadRequest, StorageError, UploadDetailsFailed
from mediaflow.profiles import ProfileConfig
from mediaflow.schemas.upload import (
    CompletedPart,
    MultipartUpload,
    PartUpload,
    PresignRequest,
    SingleUpload,
    UploadAction,
    UploadDetails,
    UploadPlan,
)
from mediaflow.storage.base import ObjectStorage, PartInfo
from mediaflow.upload.keys import build_object_key, generate_shard
from mediaflow.upload.strategy import MIB, Strategy, part_count, select_strategy
from mediaflow.upload.validation import validate_presign_request
from mediaflow.utils import metrics
from mediaflow.utils.logging import (
    log_multipart_aborted,
    log_multipart_completed,
    log_presign_issued,
    log_storage_failure,
)

logger = logging.getLogger(__name__)

# Upper bound on part URLs presigned for a single plan
MAX_PRESIGNED_PARTS = 100

DEFAULT_PRESIGN_CONCURRENCY = 16


def build_required_headers(mime: str) -> dict[str, str]:
    """Headers the client must send with every upload request."""
    return {"Content-Type": mime}


def _expires_in(expires_at: datetime) -> int:
    remaining = (expires_at - datetime.now(timezone.utc)).total_seconds()
    return max(1, round(remaining))


class UploadService:
    """
    Upload strategy engine plus multipart completion/abort relay.

    Holds only read-only collaborators, so one instance can serve any
    number of concurrent requests.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        profiles: ProfileConfig,
        max_concurrency: int = DEFAULT_PRESIGN_CONCURRENCY,
    ):
        self.storage = storage
        self.profiles = profiles
        self.max_concurrency = max(1, max_concurrency)

    async def presign_upload(self, request: PresignRequest, base_url: str) -> UploadPlan:
        """
        Validate a request and build its upload plan.

        Args:
            request: Presign request from the client
            base_url: Public base URL of this API, used for complete/abort URLs

        Returns:
            UploadPlan with either single or multipart details

        Raises:
            BadRequest, MimeNotAllowed, SizeTooLarge: Invalid request
            UploadDetailsFailed: Storage failed while building the plan
        """
        start_time = time.perf_counter()
        profile = validate_presign_request(request, self.profiles)

        shard = request.shard or ""
        if not shard and profile.enable_sharding:
            shard = generate_shard(request.key_base)

        object_key = build_object_key(profile.storage_path, request.key_base, request.ext, shard)
        strategy = select_strategy(request.multipart, request.size_bytes, profile.multipart_threshold_mb)
        headers = build_required_headers(request.mime)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=profile.token_ttl_seconds)

        upload = await self.build_plan(
            strategy,
            object_key,
            headers,
            expires_at,
            profile.part_size_mb,
            request.size_bytes,
            base_url,
        )

        duration = time.perf_counter() - start_time
        metrics.uploads_presigned_total.labels(strategy=strategy.value).inc()
        metrics.presign_duration_seconds.labels(strategy=strategy.value).observe(duration)
        log_presign_issued(
            logger,
            object_key=object_key,
            strategy=strategy.value,
            profile=request.profile,
            upload_id=upload.multipart.upload_id if upload.multipart else None,
            part_count=len(upload.multipart.parts) if upload.multipart else None,
            duration_ms=duration * 1000,
        )

        return UploadPlan(object_key=object_key, upload=upload)

    async def build_plan(
        self,
        strategy: Strategy,
        object_key: str,
        headers: dict[str, str],
        expires_at: datetime,
        part_size_mb: int,
        total_size_bytes: int,
        base_url: str = "",
    ) -> UploadDetails:
        """Presign the uploads for an already validated request."""
        if strategy == Strategy.SINGLE:
            return await self._build_single(object_key, headers, expires_at)
        return await self._build_multipart(
            object_key, headers, expires_at, part_size_mb, total_size_bytes, base_url
        )

    async def _build_single(
        self, object_key: str, headers: dict[str, str], expires_at: datetime
    ) -> UploadDetails:
        # Conditional create: storage rejects the PUT if the key already exists
        single_headers = dict(headers)
        single_headers["If-None-Match"] = "*"

        try:
            url = await self.storage.presign_put(object_key, _expires_in(expires_at), single_headers)
        except Exception as e:
            self._record_storage_failure("presign_put", e, object_key=object_key)
            raise UploadDetailsFailed(StorageError("presign put object", e)) from e

        return UploadDetails(
            single=SingleUpload(
                method="PUT",
                url=url,
                headers=single_headers,
                expires_at=expires_at,
            )
        )

    async def _build_multipart(
        self,
        object_key: str,
        headers: dict[str, str],
        expires_at: datetime,
        part_size_mb: int,
        total_size_bytes: int,
        base_url: str,
    ) -> UploadDetails:
        try:
            upload_id = await self.storage.create_multipart_upload(object_key, headers)
        except Exception as e:
            self._record_storage_failure("create_multipart_upload", e, object_key=object_key)
            raise UploadDetailsFailed(StorageError("create multipart upload", e)) from e

        part_size_bytes = part_size_mb * MIB
        num_parts = part_count(total_size_bytes, part_size_bytes)
        if num_parts > MAX_PRESIGNED_PARTS:
            logger.warning(
                f"Clamping part URLs for {object_key} from {num_parts} to {MAX_PRESIGNED_PARTS}",
                extra={
                    "event": "multipart_parts_clamped",
                    "object_key": object_key,
                    "requested_parts": num_parts,
                    "max_parts": MAX_PRESIGNED_PARTS,
                },
            )
            num_parts = MAX_PRESIGNED_PARTS

        try:
            parts = await self._presign_parts(object_key, upload_id, num_parts, headers, expires_at)
        except StorageError as e:
            await self._abort_after_failure(object_key, upload_id, e)
            raise UploadDetailsFailed(e) from e.cause

        metrics.upload_parts_presigned_total.inc(len(parts))

        # Keys may hold any character the client put in key_base
        api_base = base_url.rstrip("/")
        encoded_key = quote(object_key, safe="/")
        encoded_upload_id = quote(upload_id, safe="")
        return UploadDetails(
            multipart=MultipartUpload(
                upload_id=upload_id,
                part_size=part_size_bytes,
                parts=parts,
                complete=UploadAction(
                    method="POST",
                    url=f"{api_base}/v1/uploads/{encoded_key}/complete/{encoded_upload_id}",
                    headers={"Content-Type": "application/json"},
                    expires_at=expires_at,
                ),
                abort=UploadAction(
                    method="DELETE",
                    url=f"{api_base}/v1/uploads/{encoded_key}/abort/{encoded_upload_id}",
                    headers={},
                    expires_at=expires_at,
                ),
            )
        )

    async def _presign_parts(
        self,
        object_key: str,
        upload_id: str,
        num_parts: int,
        headers: dict[str, str],
        expires_at: datetime,
    ) -> list[PartUpload]:
        """
        Presign parts 1..num_parts concurrently.

        Results come back in part order regardless of completion order. The
        first failure cancels the calls still in flight.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        expires_in = _expires_in(expires_at)

        async def presign_part(part_number: int) -> PartUpload:
            async with semaphore:
                try:
                    url = await self.storage.presign_upload_part(
                        object_key, upload_id, part_number, expires_in
                    )
                except Exception as e:
                    self._record_storage_failure(
                        "presign_upload_part", e, object_key=object_key, upload_id=upload_id
                    )
                    raise StorageError(f"presign part {part_number}", e) from e
            return PartUpload(
                part_number=part_number,
                method="PUT",
                url=url,
                headers=dict(headers),
                expires_at=expires_at,
            )

        tasks = [asyncio.ensure_future(presign_part(n)) for n in range(1, num_parts + 1)]
        try:
            return list(await asyncio.gather(*tasks))
        except (asyncio.CancelledError, Exception):
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _abort_after_failure(self, object_key: str, upload_id: str, error: StorageError) -> None:
        """Best-effort cleanup of a session whose plan could not be built."""
        try:
            await self.storage.abort_multipart_upload(object_key, upload_id)
        except Exception as abort_error:
            self._record_storage_failure(
                "abort_multipart_upload", abort_error, object_key=object_key, upload_id=upload_id
            )
            return
        log_multipart_aborted(logger, object_key=object_key, upload_id=upload_id, reason=error.message)

    async def complete_multipart_upload(
        self, object_key: str, upload_id: str, parts: list[CompletedPart]
    ) -> None:
        """
        Relay a multipart completion to storage.

        Parts are forwarded verbatim; ETag and contiguity checks belong to
        the storage backend.

        Raises:
            BadRequest: Missing identifiers or empty parts list
            StorageError: Storage rejected the completion
        """
        if not object_key or not upload_id:
            raise BadRequest("object_key and upload_id are required")
        if not parts:
            raise BadRequest("parts is required and cannot be empty")

        start_time = time.perf_counter()
        part_infos = [PartInfo(part_number=p.part_number, etag=p.etag) for p in parts]
        try:
            await self.storage.complete_multipart_upload(object_key, upload_id, part_infos)
        except Exception as e:
            self._record_storage_failure(
                "complete_multipart_upload", e, object_key=object_key, upload_id=upload_id
            )
            raise StorageError("complete multipart upload", e) from e

        metrics.multipart_completed_total.inc()
        log_multipart_completed(
            logger,
            object_key=object_key,
            upload_id=upload_id,
            part_count=len(part_infos),
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def abort_multipart_upload(self, object_key: str, upload_id: str) -> None:
        """
        Relay a multipart abort to storage.

        Raises:
            BadRequest: Missing identifiers
            StorageError: Storage rejected the abort
        """
        if not object_key or not upload_id:
            raise BadRequest("object_key and upload_id are required")

        try:
            await self.storage.abort_multipart_upload(object_key, upload_id)
        except Exception as e:
            self._record_storage_failure(
                "abort_multipart_upload", e, object_key=object_key, upload_id=upload_id
            )
            raise StorageError("abort multipart upload", e) from e

        metrics.multipart_aborted_total.inc()
        log_multipart_aborted(logger, object_key=object_key, upload_id=upload_id, reason="client request")

    @staticmethod
    def _record_storage_failure(operation: str, error: Exception, **fields) -> None:
        metrics.storage_errors_total.labels(operation=operation).inc()
        log_storage_failure(logger, operation=operation, error=str(error), **fields)
