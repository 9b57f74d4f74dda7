"""Utility modules for the keyword gap engine."""

from .config import Settings, get_settings
from .domain import InputError, normalize_domain, is_valid_host, validate_comparison
from .logs import configure_logging

__all__ = [
    "Settings",
    "get_settings",
    # Domain normalization
    "InputError",
    "normalize_domain",
    "is_valid_host",
    "validate_comparison",
    "configure_logging",
]
