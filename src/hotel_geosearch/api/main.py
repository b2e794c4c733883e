from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from hotel_geosearch.api.routes import router
from hotel_geosearch.config import settings
from hotel_geosearch.data.cache import CacheService
from hotel_geosearch.data.database import create_db_engine, create_session_factory
from hotel_geosearch.data.repository import LocationRepository
from hotel_geosearch.exceptions import HotelSearchError
from hotel_geosearch.logging_config import get_logger
from hotel_geosearch.search.engine import HotelSearchService
from hotel_geosearch.search.suggestions import SuggestionAggregator

logger = get_logger(__name__)


def _build_services() -> tuple[HotelSearchService, SuggestionAggregator, Engine]:
    """Wire datastore, cache and services from settings. One cache is shared by both services."""
    engine = create_db_engine()
    repository = LocationRepository(create_session_factory(engine))
    cache = CacheService()
    return HotelSearchService(repository, cache), SuggestionAggregator(repository, cache), engine


def create_app(
    search_service: HotelSearchService | None = None,
    suggestion_service: SuggestionAggregator | None = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Services passed in are used as-is (tests) and left open on shutdown;
    otherwise they are built from settings when the app starts, and their
    cache and engine are released when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.search_service = search_service
        app.state.suggestion_service = suggestion_service
        owned = None
        if search_service is None or suggestion_service is None:
            logger.info("Initializing search services from settings...")
            try:
                built_search, built_suggest, engine = _build_services()
                owned = (built_search.cache, engine)
                app.state.search_service = search_service or built_search
                app.state.suggestion_service = suggestion_service or built_suggest
                logger.info("Search services initialized (cache backend: %s)", built_search.cache.backend_name)
            except HotelSearchError as e:
                # Keep serving /health; search endpoints answer 503
                logger.error("Failed to initialize search services: %s", e.message)
        yield
        if owned is not None:
            cache, engine = owned
            cache.close()
            engine.dispose()
            logger.info("Search services shut down")

    app = FastAPI(
        title="Hotel Geosearch API",
        description="Location-based hotel search, statistics and autocomplete.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.search_service = search_service
    app.state.suggestion_service = suggestion_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/health")
    def health_check():
        """Simple health check endpoint."""
        service = app.state.search_service
        return {
            "status": "healthy",
            "search_ready": service is not None,
            "cache_backend": service.cache.backend_name if service is not None else None,
        }

    return app


app = create_app()
