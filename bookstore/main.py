"""FastAPI application wiring for the bookstore service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.errors import register_error_handlers
from .api.routes import router as api_router
from .config import Settings, get_settings
from .domain.service import AccountService, BookService
from .repository import AccountRepository, BookRepository, ensure_schema
from .security.guard import AccessGuard
from .security.passwords import PasswordHasher
from .security.rate_limiter import RateLimiter, SlidingWindowRateLimiter
from .security.redis_rate_limiter import RedisSlidingWindowRateLimiter
from .security.tokens import TokenService

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            client = redis.from_url(settings.redis_url)
            client.ping()
        except redis.RedisError as exc:
            logger.warning(
                "redis rate limiter unavailable, falling back to in-memory: %s",
                type(exc).__name__,
            )
        else:
            logger.info("rate limiter configured for redis backend")
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; shared resources are opened in its lifespan."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the Postgres pool once and build the request-independent services."""
        tokens = TokenService.from_settings(settings)
        hasher = PasswordHasher.from_settings(settings)
        pool = ConnectionPool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            open=False,
        )
        pool.open()
        try:
            ensure_schema(pool)
            app.state.pool = pool
            app.state.account_service = AccountService(AccountRepository(pool), hasher, tokens)
            app.state.book_service = BookService(BookRepository(pool))
            app.state.access_guard = AccessGuard(tokens)
            app.state.rate_limiter = build_rate_limiter(settings)
            logger.info("%s %s started", settings.app_name, settings.version)
            yield
        finally:
            pool.close()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


configure_logging(get_settings())
app = create_app()
