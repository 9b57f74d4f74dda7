"""
Authentication Configuration

Settings for Supabase JWT validation.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class AuthConfig(BaseSettings):
    """Authentication configuration loaded from environment."""

    # Supabase Configuration
    supabase_jwt_secret: str = ""

    # JWT Settings
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Auth behavior
    auth_enabled: bool = True  # Set to False for local dev without auth
    dev_user_id: str = "dev-user"

    class Config:
        env_prefix = ""
        env_file = ".env"
        extra = "ignore"

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_jwt_secret)


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Get cached auth configuration."""
    return AuthConfig()
