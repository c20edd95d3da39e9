"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from mediaflow.api import health, uploads, images

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(uploads.router, prefix="/v1/uploads", tags=["uploads"])
api_router.include_router(images.router, tags=["images"])
