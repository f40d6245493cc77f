"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
JSON error envelopes, lifespan events that build the tenancy context and
initialize the control-plane database, and the API routers.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.capacity.api.errors import register_exception_handlers
from src.capacity.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.capacity.api.v1.router import router as api_router
from src.capacity.config import get_settings
from src.capacity.core.database import close_db, init_db
from src.capacity.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.capacity.core.tenancy import TenancyContext, build_tenancy_context


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build tenancy services, init DB and Sentry on startup, close on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog(settings)

    # A context handed to create_app() (tests, scripts) is used as-is
    owns_context = getattr(app.state, "tenancy", None) is None
    if owns_context:
        app.state.tenancy = build_tenancy_context(settings)
        await init_db(app.state.tenancy.engine, settings)

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    log.info("app.started", environment=settings.ENVIRONMENT.value)
    yield

    if owns_context and app.state.tenancy.engine is not None:
        await close_db(app.state.tenancy.engine)
    log.info("app.stopped")


def create_app(context: TenancyContext | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Capacity Tenancy API",
        version="0.1.0",
        description="Tenant provisioning and routing for the Capacity platform",
        lifespan=lifespan,
    )
    app.state.tenancy = context

    register_exception_handlers(app)

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router)

    # Prometheus metrics endpoint (infrastructure route)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
