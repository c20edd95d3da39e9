"""
Pydantic schemas for upload endpoints.

Required presign fields are checked by the upload validator rather than by
pydantic, so missing values surface as a bad_request error with a specific
message instead of a generic validation failure.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PresignRequest(BaseModel):
    """Request schema for presigned upload generation."""
    key_base: str = Field("", description="Caller-supplied unique identifier")
    ext: str = Field("", description="File extension without dot")
    mime: str = Field("", description="MIME type (e.g., 'image/jpeg')")
    size_bytes: int = Field(0, description="Total file size in bytes")
    kind: str = Field("", description="Media kind: 'image' or 'video'")
    profile: str = Field("", description="Upload profile name")
    multipart: str = Field("auto", description="Multipart mode: 'auto', 'force' or 'off'")
    shard: Optional[str] = Field(None, description="Optional shard override")

    model_config = {
        "json_schema_extra": {
            "example": {
                "key_base": "user-123-avatar",
                "ext": "jpg",
                "mime": "image/jpeg",
                "size_bytes": 1048576,
                "kind": "image",
                "profile": "avatar",
                "multipart": "auto"
            }
        }
    }


class UploadAction(BaseModel):
    """A call the client makes against this API (complete / abort)."""
    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    expires_at: datetime


class SingleUpload(BaseModel):
    """Single PUT upload details."""
    method: str
    url: str
    headers: dict[str, str]
    expires_at: datetime


class PartUpload(BaseModel):
    """Presigned URL for one multipart part."""
    part_number: int
    method: str
    url: str
    headers: dict[str, str]
    expires_at: datetime


class MultipartUpload(BaseModel):
    """Multipart upload details."""
    upload_id: str
    part_size: int = Field(..., description="Part size in bytes")
    parts: list[PartUpload]
    complete: UploadAction
    abort: UploadAction


class UploadDetails(BaseModel):
    """Exactly one of single / multipart is set."""
    single: Optional[SingleUpload] = None
    multipart: Optional[MultipartUpload] = None


class UploadPlan(BaseModel):
    """Response schema for POST /v1/uploads/presign."""
    object_key: str
    upload: UploadDetails


class CompletedPart(BaseModel):
    """A part uploaded by the client, with the ETag storage returned for it."""
    part_number: int = Field(..., ge=1)
    etag: str = Field(..., min_length=1)


class CompleteMultipartRequest(BaseModel):
    """Request schema for multipart completion."""
    parts: list[CompletedPart] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "parts": [
                    {"part_number": 1, "etag": "\"9b2cf535f27731c974343645a3985328\""},
                    {"part_number": 2, "etag": "\"6f5902ac237024bdd0c176cb93063dc4\""}
                ]
            }
        }
    }


class CompleteMultipartResponse(BaseModel):
    status: str = "completed"
    object_key: str


class AbortMultipartResponse(BaseModel):
    status: str = "aborted"
    upload_id: str


class ErrorResponse(BaseModel):
    """Body of every error response."""
    code: str
    message: str
    hint: Optional[str] = None
