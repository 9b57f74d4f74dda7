"""
Supabase access-token verification.

Gap reports are owned by the token subject, so a token is only accepted
when it is signed with the project secret, addressed to the configured
audience, unexpired and carries a non-empty `sub`.
"""

import logging
from typing import Any, Dict, Optional

import jwt

from .config import AuthConfig, get_auth_config

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
_REJECTIONS = (
    (jwt.ExpiredSignatureError, "Token has expired"),
    (jwt.InvalidAudienceError, "Invalid token audience"),
    (jwt.InvalidSignatureError, "Invalid token signature"),
    (jwt.DecodeError, "Malformed token"),
)


class JWTError(Exception):
    """Token is missing, invalid, expired or malformed."""


def _rejection_message(error: jwt.PyJWTError) -> str:
    for error_type, message in _REJECTIONS:
        if isinstance(error, error_type):
            return message
    return f"Token rejected: {error}"


def verify_supabase_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Decode a bearer token and return its claims.

    Raises:
        JWTError: secret not configured, or the token fails any check
    """
    config = config or get_auth_config()
    if not config.is_configured:
        raise JWTError("SUPABASE_JWT_SECRET not configured")

    try:
        claims = jwt.decode(
            token,
            config.supabase_jwt_secret,
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
            options={"require": ["exp"]},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise JWTError(_rejection_message(e)) from e

    if not claims.get("sub"):
        raise JWTError("Token has no subject ('sub') to own reports")
    return claims
