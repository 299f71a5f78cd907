from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.router import router as api_v1_router
from app.config.logging import setup_logging
from app.config.redis import create_redis_client
from app.config.settings import Settings, settings as default_settings
from app.core.error_handlers import register_exception_handlers
from app.core.events import EventBus
from app.core.logging import get_logger
from app.core.middleware import register_middlewares
from app.db.init_db import init_db
from app.db.session import build_engine, build_session_factory
from app.schemas.common.response import HealthResponse
from app.services.availability.availability_cache import AvailabilityCache
from app.services.availability.availability_calculator import AvailabilityCalculator
from app.services.cache import CacheBackend, MemoryCacheBackend, RedisCacheBackend
from app.utils.date_utils import Clock, spa_clock

logger = get_logger(__name__)


def build_cache_backend(settings: Settings) -> CacheBackend:
    """Memory backend for a single process, Redis when workers share a cache."""
    if settings.CACHE_BACKEND == "redis":
        return RedisCacheBackend(
            create_redis_client(settings),
            namespace=settings.CACHE_NAMESPACE,
            tag_ttl_seconds=max(settings.DATE_SUMMARY_CACHE_TTL_SECONDS, settings.SLOT_CACHE_TTL_SECONDS),
        )
    return MemoryCacheBackend()


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    clock: Optional[Clock] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures title, version, debug mode from Settings.
    - Builds the session factory, availability cache and event bus and
      keeps them on ``app.state`` for the lifetime of the application.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the versioned API router under /api/v1.
    """
    settings = settings or default_settings
    engine = engine or build_engine(settings)
    session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging(settings)
        if settings.ENVIRONMENT != "production":
            # For dev/demo only; production schemas are managed by migrations
            init_db(engine)

        calculator = AvailabilityCalculator(session_factory, settings)
        app.state.availability_cache = AvailabilityCache(calculator, build_cache_backend(settings), settings)
        app.state.event_bus = EventBus()
        logger.info(
            "Spa booking engine started",
            extra={"environment": settings.ENVIRONMENT, "cache_backend": settings.CACHE_BACKEND},
        )
        try:
            yield
        finally:
            app.state.availability_cache.close()
            logger.info("Spa booking engine stopped")

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.clock = clock or spa_clock(settings.TIMEZONE)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register shared core middlewares (request ID, timing, etc.)
    register_middlewares(app)
    register_exception_handlers(app)

    # Mount API v1 under /api/v1
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.get("/health", response_model=HealthResponse, tags=["System Health"])
    def health_check() -> HealthResponse:
        database = "ok"
        try:
            with session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Health check database probe failed: {e}")
            database = "unavailable"

        return HealthResponse(
            status="healthy" if database == "ok" else "degraded",
            version=settings.API_VERSION,
            environment=settings.ENVIRONMENT,
            database=database,
            cache=app.state.availability_cache.stats(),
        )

    return app


app = create_app()
