"""
Upload endpoints for presigned URL generation.

Implements the direct-to-storage upload flow:
1. POST /v1/uploads/presign - Get a single or multipart upload plan
2. POST /v1/uploads/{object_key}/complete/{upload_id} - Finish a multipart upload
3. DELETE /v1/uploads/{object_key}/abort/{upload_id} - Cancel a multipart upload

The object key may contain slashes; the route captures everything up to
the /complete/ or /abort/ segment.

Security:
- All endpoints require the API key (when configured)
- Presigned URLs expire after the profile's token_ttl_seconds
"""
from fastapi import APIRouter, Depends, Request

from mediaflow.auth.dependencies import require_api_key
from mediaflow.dependencies import get_upload_service
from mediaflow.schemas.upload import (
    AbortMultipartResponse,
    CompleteMultipartRequest,
    CompleteMultipartResponse,
    ErrorResponse,
    PresignRequest,
    UploadPlan,
)
from mediaflow.upload.presign import UploadService

router = APIRouter(
    dependencies=[Depends(require_api_key)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.post("/presign", response_model=UploadPlan, response_model_exclude_none=True)
async def presign_upload(
    body: PresignRequest,
    request: Request,
    service: UploadService = Depends(get_upload_service),
):
    """
    Generate presigned URLs for a direct upload.

    Small files get a single PUT URL guarded by If-None-Match so an existing
    object is never overwritten. Large files (or multipart="force") get a
    multipart session with one URL per part plus the complete/abort calls
    to make against this API once the parts are uploaded.
    """
    base_url = str(request.base_url).rstrip("/")
    return await service.presign_upload(body, base_url)


@router.post("/{object_key:path}/complete/{upload_id}", response_model=CompleteMultipartResponse)
async def complete_multipart_upload(
    object_key: str,
    upload_id: str,
    body: CompleteMultipartRequest,
    service: UploadService = Depends(get_upload_service),
):
    """
    Complete a multipart upload.

    Body carries every uploaded part with the ETag storage returned for it.
    """
    await service.complete_multipart_upload(object_key, upload_id, body.parts)
    return CompleteMultipartResponse(object_key=object_key)


@router.delete("/{object_key:path}/abort/{upload_id}", response_model=AbortMultipartResponse)
async def abort_multipart_upload(
    object_key: str,
    upload_id: str,
    service: UploadService = Depends(get_upload_service),
):
    """Abort a multipart upload and discard its uploaded parts."""
    await service.abort_multipart_upload(object_key, upload_id)
    return AbortMultipartResponse(upload_id=upload_id)
