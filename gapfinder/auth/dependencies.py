"""
FastAPI Authentication Dependencies

Resolves the caller's identity from a Supabase bearer token. Report
ownership is checked by the report store using the returned user id.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import AuthConfig, get_auth_config
from .jwt import JWTError, verify_supabase_token

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller."""
    id: str
    email: Optional[str] = None
    role: str = "authenticated"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    config: AuthConfig = Depends(get_auth_config),
) -> CurrentUser:
    """
    Get the current authenticated user.

    Raises:
        HTTPException 401: If not authenticated
    """
    # If auth is disabled (local dev), everyone is the dev user
    if not config.auth_enabled:
        return CurrentUser(id=config.dev_user_id, role="dev")

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_supabase_token(credentials.credentials, config)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(
        id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role", "authenticated"),
    )
