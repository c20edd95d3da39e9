"""
Health check endpoint.
Verifies the storage client and upload profiles are loaded.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("")
async def health_check(request: Request):
    """
    Health check endpoint.
    Returns status of the storage client and profile configuration.
    """
    storage = getattr(request.app.state, "storage", None)
    profile_config = getattr(request.app.state, "profile_config", None)

    health_status = {
        "status": "healthy",
        "storage": "configured" if storage is not None else "missing",
        "profiles": len(profile_config.profiles) if profile_config is not None else 0,
    }

    if storage is None or profile_config is None:
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
