"""
Error taxonomy for the upload API.

Every error carries a stable machine-readable code, an HTTP status and an
optional remediation hint. The exception handlers in main.py render them as:

    {"code": "...", "message": "...", "hint": "..."}
"""
from typing import Optional

from fastapi import status

ERR_BAD_REQUEST = "bad_request"
ERR_MIME_NOT_ALLOWED = "mime_not_allowed"
ERR_SIZE_TOO_LARGE = "size_too_large"
ERR_STORAGE = "storage_error"
ERR_UNAUTHORIZED = "unauthorized"
ERR_NOT_FOUND = "not_found"


class MediaflowError(Exception):
    """Base class for errors surfaced at the HTTP boundary."""

    code = ERR_BAD_REQUEST
    status_code = status.HTTP_400_BAD_REQUEST
    default_hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint if hint is not None else self.default_hint

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.hint:
            body["hint"] = self.hint
        return body


class BadRequest(MediaflowError):
    """Malformed or missing fields, unknown profile, empty parts list."""


class MimeNotAllowed(MediaflowError):
    code = ERR_MIME_NOT_ALLOWED
    default_hint = "Check allowed_mimes in upload configuration"


class SizeTooLarge(MediaflowError):
    code = ERR_SIZE_TOO_LARGE
    default_hint = "Reduce file size or check size_max_bytes in configuration"


class StorageError(MediaflowError):
    """
    Failure reported by the object storage client.

    The message always names the failed operation and includes the
    underlying cause text.
    """

    code = ERR_STORAGE
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, operation: str, cause: BaseException, hint: Optional[str] = None):
        super().__init__(f"failed to {operation}: {cause}", hint)
        self.operation = operation
        self.cause = cause


class UploadDetailsFailed(StorageError):
    """Raised when an upload plan cannot be built. No partial plan is returned."""

    def __init__(self, cause: BaseException):
        super().__init__("create upload details", cause)


class Unauthorized(MediaflowError):
    code = ERR_UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_hint = "Provide API key via Authorization: Bearer <key> or X-API-Key: <key>"


class NotFound(MediaflowError):
    code = ERR_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class ConfigError(Exception):
    """Profile configuration could not be read or is invalid."""
