"""
Keyword Gap API

FastAPI application factory. Shared services (report store, keyword
fetcher, response cache) are built once per app and kept on `app.state`;
route handlers reach them through dependencies.

Run locally:
    uvicorn gapfinder.api.app:create_app --factory --reload
"""

import logging
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.orm import sessionmaker

from gapfinder import __version__
from gapfinder.cache import CacheBackend, create_cache
from gapfinder.collector import DataForSEOClient, KeywordFetcher, RetryPolicy
from gapfinder.database import ReportStore, check_db_connection, get_session_factory, init_db
from gapfinder.gap import OpportunityWeights
from gapfinder.services import GapAnalysisService
from gapfinder.utils import Settings, configure_logging, get_settings

from .gaps import router as gaps_router

logger = logging.getLogger(__name__)


def build_fetcher(settings: Settings, cache: Optional[CacheBackend]) -> Optional[KeywordFetcher]:
    """DataForSEO-backed fetcher, or None when no credentials are configured."""
    if not settings.has_dataforseo_credentials:
        logger.warning("DATAFORSEO_LOGIN/DATAFORSEO_PASSWORD not set - gap submissions are disabled")
        return None

    client = DataForSEOClient(
        login=settings.DATAFORSEO_LOGIN,
        password=settings.DATAFORSEO_PASSWORD,
        retry_policy=RetryPolicy.from_settings(settings),
        timeout=settings.API_TIMEOUT,
    )
    return KeywordFetcher(
        client=client,
        market_locations=settings.MARKET_LOCATIONS,
        language_name=settings.LANGUAGE_NAME,
        limit=settings.MAX_KEYWORDS_PER_DOMAIN,
        cache=cache,
    )


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    fetcher: Optional[KeywordFetcher] = None,
    cache: Optional[CacheBackend] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings (defaults to environment)
        session_factory: Database sessions (defaults to DATABASE_URL)
        fetcher: Keyword fetcher (defaults to a DataForSEO-backed one)
        cache: Response cache for the default fetcher (defaults to settings)
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Keyword Gap Engine",
        description="Competitor keyword gap analysis powered by DataForSEO",
        version=__version__,
    )

    session_factory = session_factory or get_session_factory()
    store = ReportStore(session_factory)

    if fetcher is None:
        cache = cache if cache is not None else create_cache(settings)
        fetcher = build_fetcher(settings, cache)
    else:
        cache = fetcher.cache

    app.state.settings = settings
    app.state.engine = session_factory.kw["bind"]
    app.state.store = store
    app.state.cache = cache
    app.state.fetcher = fetcher
    app.state.service = None
    if fetcher is not None:
        app.state.service = GapAnalysisService(
            store=store,
            fetcher=fetcher,
            weights=OpportunityWeights.from_settings(settings),
            allowed_markets=settings.MARKET_LOCATIONS.keys(),
        )

    app.include_router(gaps_router)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @app.on_event("startup")
    async def startup_event():
        """Initialize database on startup."""
        logger.info("Initializing database...")
        try:
            init_db(app.state.engine)
            if check_db_connection(app.state.engine):
                logger.info("Database connection verified")
            else:
                logger.warning("Database connection check failed - continuing anyway")
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.fetcher is not None:
            await app.state.fetcher.client.close()
        if app.state.cache is not None:
            await app.state.cache.close()

    # =========================================================================
    # HEALTH
    # =========================================================================

    @app.get("/health")
    async def health():
        """Liveness plus database status."""
        db_ok = check_db_connection(app.state.engine)
        return {
            "status": "healthy" if db_ok else "degraded",
            "version": __version__,
            "database": "connected" if db_ok else "unavailable",
            "provider_configured": app.state.service is not None,
        }

    return app
