"""
Image endpoints.

- POST /thumb/{image_type}/{image_id} - Upload an original and generate variants
- GET /thumb/{image_type}/{image_id}?width=N - Serve a resized variant (public)
- GET /originals/{image_type}/{image_id} - Serve the original

image_type selects the profile; unknown types use the "default" profile.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response

from mediaflow.auth.dependencies import require_api_key
from mediaflow.dependencies import get_image_service
from mediaflow.errors import BadRequest
from mediaflow.services.image_service import ImageService

router = APIRouter()


@router.post(
    "/thumb/{image_type}/{image_id:path}",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
async def upload_image(
    image_type: str,
    image_id: str,
    file: UploadFile = File(...),
    service: ImageService = Depends(get_image_service),
):
    """Store an original image and its resized variants."""
    data = await file.read()
    if not data:
        raise BadRequest("file is empty")

    keys = await service.upload_image(image_type, image_id, data)
    return {"status": "uploaded", "original": keys[0], "variants": keys[1:]}


@router.get("/thumb/{image_type}/{image_id:path}")
async def get_thumbnail(
    image_type: str,
    image_id: str,
    width: Optional[int] = Query(None, ge=1, le=2048),
    service: ImageService = Depends(get_image_service),
):
    """Serve a resized variant. No authentication required."""
    data, content_type = await service.get_thumbnail(image_type, image_id, width)
    return Response(content=data, media_type=content_type)


@router.get("/originals/{image_type}/{image_id:path}", dependencies=[Depends(require_api_key)])
async def get_original(
    image_type: str,
    image_id: str,
    service: ImageService = Depends(get_image_service),
):
    """Serve the original image."""
    data, content_type = await service.get_original(image_type, image_id)
    return Response(content=data, media_type=content_type)
