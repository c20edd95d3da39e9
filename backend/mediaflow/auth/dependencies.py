"""
FastAPI dependencies for authentication.
Provides require_api_key, which checks the shared API key on write endpoints.
"""
import hmac
from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader, HTTPBearer, HTTPAuthorizationCredentials

from mediaflow.config import settings
from mediaflow.errors import Unauthorized

# auto_error=False: a missing header falls through to the other scheme
bearer_scheme = HTTPBearer(auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _matches(candidate: Optional[str], expected: str) -> bool:
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    api_key: Optional[str] = Depends(api_key_header),
) -> None:
    """
    FastAPI dependency that validates the API key.

    Accepted as either:
    - Authorization: Bearer <key>
    - X-API-Key: <key>

    When no API key is configured the check is skipped (development only).

    Raises:
        Unauthorized: If no header carries the configured key
    """
    expected = settings.api_key
    if not expected:
        return

    if credentials is not None and _matches(credentials.credentials, expected):
        return
    if _matches(api_key, expected):
        return

    raise Unauthorized("Invalid or missing API key")
