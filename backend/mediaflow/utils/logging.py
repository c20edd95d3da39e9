"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- object_key
- upload_id
- profile
- duration_ms

Usage:
    from mediaflow.utils.logging import configure_logging, log_presign_issued

    configure_logging('mediaflow-api', 'INFO')
    log_presign_issued(logger, object_key='originals/ab/k.jpg', strategy='single')
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (e.g. mediaflow-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    object_key: Optional[str] = None,
    upload_id: Optional[str] = None,
    profile: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        object_key: Optional storage object key
        upload_id: Optional multipart upload ID
        profile: Optional upload profile name
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if object_key:
        extra["object_key"] = object_key
    if upload_id:
        extra["upload_id"] = upload_id
    if profile:
        extra["profile"] = profile
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Upload event functions

def log_presign_issued(
    logger: logging.Logger,
    object_key: str,
    strategy: str,
    profile: Optional[str] = None,
    upload_id: Optional[str] = None,
    part_count: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successfully built upload plan.

    Args:
        logger: Logger instance
        object_key: Resolved object key (required)
        strategy: "single" or "multipart" (required)
        profile: Optional profile name
        upload_id: Multipart upload ID, when multipart
        part_count: Number of presigned parts, when multipart
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="presign_issued",
        object_key=object_key,
        upload_id=upload_id,
        profile=profile,
        duration_ms=duration_ms,
        strategy=strategy,
        **kwargs
    )
    if part_count is not None:
        extra["part_count"] = part_count

    logger.info(f"Presigned {strategy} upload: {object_key}", extra=extra)


def log_multipart_completed(
    logger: logging.Logger,
    object_key: str,
    upload_id: str,
    part_count: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log multipart completion."""
    extra = _build_log_extra(
        event="multipart_completed",
        object_key=object_key,
        upload_id=upload_id,
        duration_ms=duration_ms,
        part_count=part_count,
        **kwargs
    )

    logger.info(f"Multipart upload completed: {object_key}", extra=extra)


def log_multipart_aborted(
    logger: logging.Logger,
    object_key: str,
    upload_id: str,
    reason: Optional[str] = None,
    **kwargs
):
    """Log multipart abort, either client-requested or after a failed plan."""
    extra = _build_log_extra(
        event="multipart_aborted",
        object_key=object_key,
        upload_id=upload_id,
        **kwargs
    )
    if reason:
        extra["reason"] = reason

    logger.info(f"Multipart upload aborted: {upload_id}", extra=extra)


def log_storage_failure(
    logger: logging.Logger,
    operation: str,
    error: str,
    object_key: Optional[str] = None,
    upload_id: Optional[str] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log a failed storage call.

    Args:
        logger: Logger instance
        operation: Storage operation name (required)
        error: Error message (required)
        object_key: Optional object key
        upload_id: Optional multipart upload ID
        include_traceback: Whether to include stack trace (default: False)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_failure",
        object_key=object_key,
        upload_id=upload_id,
        operation=operation,
        error=str(error),
        **kwargs
    )

    message = f"Storage failure: {operation} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
            return
    logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
