"""
FastAPI application entry point.
Sets up the API with lifespan events for storage and profile initialization.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediaflow import __version__
from mediaflow.api.router import api_router
from mediaflow.config import settings
from mediaflow.errors import (
    ConfigError,
    ERR_BAD_REQUEST,
    ERR_NOT_FOUND,
    ERR_UNAUTHORIZED,
    MediaflowError,
)
from mediaflow.middleware.metrics_middleware import MetricsMiddleware
from mediaflow.profiles import ProfileConfig, load_profile_config
from mediaflow.storage.s3_client import get_s3_storage
from mediaflow.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Configure logging, create the storage client, load profiles
    - Shutdown: Nothing to release; uvicorn drains in-flight requests
    """
    configure_logging('mediaflow-api', settings.log_level)

    storage = get_s3_storage()
    app.state.storage = storage

    try:
        app.state.profile_config = await load_profile_config(
            settings.storage_config_path,
            storage=storage,
            bucket=settings.s3_bucket,
        )
    except ConfigError as e:
        # In production a missing config must stop the service
        if settings.environment == "production":
            raise
        logger.warning(f"Storage config not loaded, starting without profiles: {e}")
        app.state.profile_config = ProfileConfig()

    yield

    logger.info("Server shutting down")


# Create FastAPI app
app = FastAPI(
    title="Mediaflow API",
    description="Presigned uploads and image variants on S3-compatible storage",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

app.include_router(api_router)


# ============================================================================
# Error handlers
# ============================================================================

@app.exception_handler(MediaflowError)
async def mediaflow_error_handler(request: Request, exc: MediaflowError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "")
    else:
        message = "Invalid request body"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": ERR_BAD_REQUEST, "message": message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    codes = {
        status.HTTP_401_UNAUTHORIZED: ERR_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN: ERR_UNAUTHORIZED,
        status.HTTP_404_NOT_FOUND: ERR_NOT_FOUND,
    }
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": codes.get(exc.status_code, ERR_BAD_REQUEST), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": "internal_error", "message": str(exc)},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Mediaflow API",
        "version": __version__,
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def run():
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "mediaflow.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
        timeout_graceful_shutdown=10,
    )


if __name__ == "__main__":
    run()
