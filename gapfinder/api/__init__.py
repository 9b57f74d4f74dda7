"""
HTTP API

FastAPI application and the competitor gap router.
"""

from .app import build_fetcher, create_app
from .gaps import router as gaps_router

__all__ = ["build_fetcher", "create_app", "gaps_router"]
