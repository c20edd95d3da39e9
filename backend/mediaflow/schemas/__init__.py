"""
Pydantic schemas for API request/response validation.
"""
from mediaflow.schemas.upload import (
    PresignRequest,
    UploadPlan,
    UploadDetails,
    SingleUpload,
    MultipartUpload,
    PartUpload,
    UploadAction,
    CompletedPart,
    CompleteMultipartRequest,
    CompleteMultipartResponse,
    AbortMultipartResponse,
    ErrorResponse,
)

__all__ = [
    "PresignRequest",
    "UploadPlan",
    "UploadDetails",
    "SingleUpload",
    "MultipartUpload",
    "PartUpload",
    "UploadAction",
    "CompletedPart",
    "CompleteMultipartRequest",
    "CompleteMultipartResponse",
    "AbortMultipartResponse",
    "ErrorResponse",
]
