"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Dict, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # DataForSEO (required for live fetches)
    DATAFORSEO_LOGIN: str = ""
    DATAFORSEO_PASSWORD: str = ""

    # Storage
    DATABASE_URL: Optional[str] = None
    REDIS_URL: Optional[str] = None
    CACHE_ENABLED: bool = True

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Markets we can compare in (market code -> DataForSEO location code)
    MARKET_LOCATIONS: Dict[str, int] = {
        "us": 2840,
        "uk": 2826,
        "ca": 2124,
        "au": 2036,
    }
    LANGUAGE_NAME: str = "English"

    # Limits
    MAX_KEYWORDS_PER_DOMAIN: int = 500
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 500

    # Opportunity score weights (missing keywords)
    OPPORTUNITY_VOLUME_WEIGHT: float = 1.0
    OPPORTUNITY_POSITION_WEIGHT: float = 1.0
    OPPORTUNITY_DIFFICULTY_WEIGHT: float = 1.0
    OPPORTUNITY_MISSING_POSITION: int = 100
    OPPORTUNITY_SMOOTHING: float = 1.0

    # Retry / timeouts for outbound calls
    API_TIMEOUT: int = 60
    RETRY_MAX_ATTEMPTS: int = 4
    RETRY_INITIAL_DELAY: float = 1.0
    RETRY_MAX_DELAY: float = 10.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def has_dataforseo_credentials(self) -> bool:
        return bool(self.DATAFORSEO_LOGIN and self.DATAFORSEO_PASSWORD)


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
