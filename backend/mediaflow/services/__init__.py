"""
Business logic services.
"""
from mediaflow.services.image_service import ImageService

__all__ = [
    "ImageService",
]
