"""
Authentication Module

Supabase JWT validation and FastAPI dependencies.

Usage:
    from gapfinder.auth import get_current_user, CurrentUser

    @router.get("/protected")
    async def protected_route(user: CurrentUser = Depends(get_current_user)):
        return {"user_id": user.id}
"""

from .config import AuthConfig, get_auth_config
from .jwt import JWTError, verify_supabase_token
from .dependencies import CurrentUser, get_current_user, security

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "JWTError",
    "verify_supabase_token",
    "CurrentUser",
    "get_current_user",
    "security",
]
