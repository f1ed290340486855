"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (signals, payments, providers, admin, health)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- Schema creation on startup

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from signalmarket.core.config import settings
from signalmarket.infrastructure.marketplace.database import init_schema
from signalmarket.interfaces.health import router as health_router
from signalmarket.interfaces.marketplace.admin_router import router as admin_router
from signalmarket.interfaces.marketplace.dependencies import (
    get_deposit_verifier,
    get_engine,
    get_price_oracle,
)
from signalmarket.interfaces.marketplace.router import (
    payments_router,
    providers_router,
    signals_router,
)
from signalmarket.shared.errors.handlers import register_error_handlers
from signalmarket.shared.logging import configure_logging
from signalmarket.shared.security.headers import SecurityHeadersMiddleware
from signalmarket.shared.security.rate_limiting import (
    limiter,
    rate_limit_exceeded_handler,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create tables on start, close HTTP clients on stop."""
    if settings.create_schema_on_startup:
        init_schema(get_engine())
        logger.info("Database schema ready")

    yield

    # Shutdown
    if get_price_oracle.cache_info().currsize:
        get_price_oracle().close()
    if get_deposit_verifier.cache_info().currsize:
        get_deposit_verifier().close()
    if get_engine.cache_info().currsize:
        get_engine().dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(signals_router, prefix="/api/v1")
    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(providers_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    return app


app = create_app()
