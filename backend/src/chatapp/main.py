"""FastAPI application entry-point.

Assembles routers, middleware, exception handlers, and lifecycle hooks.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from chatapp.adapters.inbound.rest.routers import (
    chat_router,
    chats_router,
    health_router,
    messages_router,
    providers_router,
    upload_router,
)
from chatapp.adapters.outbound.persistence.database import create_tables
from chatapp.config import Settings, get_settings
from chatapp.dependencies import ServiceContainer, build_container
from chatapp.ports.outbound import ChatProviderPort, FileStoragePort
from chatapp.shared.errors import register_exception_handlers
from chatapp.shared.middleware import (
    LoggingMiddleware,
    MetricsMiddleware,
    RateLimitMiddleware,
    RequestIdMiddleware,
)
from chatapp.shared.observability import configure_logging
from chatapp.shared.providers.rate_limiter import FixedWindowRateLimiter

logger = structlog.get_logger(__name__)

API_V1 = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifecycle — startup & shutdown hooks."""
    settings: Settings = app.state.settings
    container: ServiceContainer = app.state.container
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.is_production,
    )
    logger.info(
        "application_starting",
        env=settings.app_env.value,
        providers=settings.provider_priority,
    )

    if settings.is_sqlite and settings.database_auto_create:
        await create_tables(container.engine)

    sweeper = asyncio.create_task(
        container.rate_limiter.run_sweeper(settings.rate_limit_sweep_interval_seconds),
        name="rate-limit-sweeper",
    )

    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await container.close()
    logger.info("application_shutdown")


def create_app(
    settings: Settings | None = None,
    *,
    chat_providers: Sequence[ChatProviderPort] | None = None,
    storage: FileStoragePort | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Application factory — creates a fully configured FastAPI instance."""
    settings = settings or get_settings()
    container = build_container(
        settings,
        chat_providers=chat_providers,
        storage=storage,
        rate_limiter=rate_limiter,
    )

    app = FastAPI(
        title="Chat Backend",
        description=(
            "Conversational chat API. Replies come from a primary language-model "
            "provider with automatic fallback to a secondary one."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.container = container

    # ── Middleware (order matters: last added = outermost) ────
    app.add_middleware(
        RateLimitMiddleware,
        limiter=container.rate_limiter,
        max_requests=settings.chat_rate_limit_max_requests,
        window_seconds=settings.chat_rate_limit_window_seconds,
        paths={f"{API_V1}/chat"},
    )
    if settings.prometheus_enabled:
        app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # Outermost, so 429s from the rate limiter carry CORS headers too
    cors_origins = settings.cors_origins
    # CORSMiddleware rejects ["*"] together with allow_credentials
    allow_all_origins = "*" in cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[] if allow_all_origins else cors_origins,
        allow_origin_regex=".*" if allow_all_origins else None,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    )

    # ── Exception handlers ───────────────────────────────────
    register_exception_handlers(app)

    # ── REST routers (versioned) ─────────────────────────────
    app.include_router(health_router, prefix=API_V1)
    app.include_router(chat_router, prefix=API_V1)
    app.include_router(chats_router, prefix=API_V1)
    app.include_router(messages_router, prefix=API_V1)
    app.include_router(upload_router, prefix=API_V1)
    app.include_router(providers_router, prefix=API_V1)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "message": "Chat backend is running",
            "docs": "/docs",
            "health": f"{API_V1}/health",
        }

    return app


# Uvicorn entry-point
app = create_app()
