"""
FastAPI dependencies for shared collaborators.

The storage client and profile config are built once in the app lifespan and
kept on app.state; tests replace them through app.dependency_overrides.
"""
from fastapi import Depends, Request

from mediaflow.config import settings
from mediaflow.profiles import ProfileConfig
from mediaflow.services.image_service import ImageService
from mediaflow.upload.presign import UploadService


def get_storage(request: Request):
    return request.app.state.storage


def get_profile_config(request: Request) -> ProfileConfig:
    return request.app.state.profile_config


def get_upload_service(
    storage=Depends(get_storage),
    profiles: ProfileConfig = Depends(get_profile_config),
) -> UploadService:
    return UploadService(storage, profiles, max_concurrency=settings.presign_concurrency)


def get_image_service(
    storage=Depends(get_storage),
    profiles: ProfileConfig = Depends(get_profile_config),
) -> ImageService:
    return ImageService(storage, profiles)
