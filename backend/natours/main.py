"""
Natours Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn natours.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │  CORS                                                   │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │  Guard pipeline (security → log → rate limit →    │  │
    │  │  body cap → cookies → sanitizers → hpp → time)    │  │
    │  │  ┌─────────────────────────────────────────────┐  │  │
    │  │  │  GZip                                       │  │  │
    │  │  │  Routes: pages, /api/v1/*, /health, /static │  │  │
    │  │  │  Not-found sentinel (last)                  │  │  │
    │  │  └─────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────┘  │
    │  Error normalization: handlers + pipeline fallback      │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, tables (development only), startup banner
    Shutdown: close the rate limit store, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from natours import __version__
from natours.config import Settings, settings
from natours.database import create_tables, dispose_engine
from natours.errors import ErrorNormalizer, register_exception_handlers
from natours.middleware.pipeline import GuardPipelineMiddleware, build_guards
from natours.middleware.rate_limit import FixedWindowRateLimiter, build_rate_limiter
from natours.routes import bookings, health, not_found, reviews, tours, users, views
from natours.templating import STATIC_DIR, templates

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(app_settings: Settings = settings) -> None:
    """
    Configure the root logger once at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # natours.access replaces the server's own access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    app_settings: Settings = app.state.settings
    setup_logging(app_settings)
    logger.info("=" * 60)
    logger.info("Natours starting up (environment=%s)", app_settings.environment)

    if app_settings.is_development:
        await create_tables()
        logger.info("Database tables ensured")

    logger.info(
        "Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port
    )
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Natours shutting down...")
    store = app.state.rate_limiter.store
    if hasattr(store, "close"):
        await store.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to build with (defaults to the environment)
        limiter:      Rate limiter to install (tests pass one with a fake clock)
    """
    app_settings = app_settings or settings
    limiter = limiter or build_rate_limiter(app_settings)

    app = FastAPI(
        title="Natours API",
        description="Tour listings, reviews and bookings.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.rate_limiter = limiter

    # ── Error Normalization ───────────────────────────────────────────────
    normalizer = ErrorNormalizer(development=app_settings.is_development, templates=templates)
    register_exception_handlers(app, normalizer)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → guard pipeline → GZip → routes.
    app.add_middleware(GZipMiddleware, minimum_size=app_settings.gzip_minimum_size)
    app.add_middleware(
        GuardPipelineMiddleware,
        guards=build_guards(app_settings, limiter),
        error_handler=normalizer.handle,
        trust_proxy=app_settings.trust_proxy,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )

    # ── Register Routes ───────────────────────────────────────────────────
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(views.router)
    app.include_router(tours.router)
    app.include_router(users.router)
    app.include_router(reviews.router)
    app.include_router(bookings.router)
    app.include_router(health.router)
    # Sentinel must stay last: it matches every path.
    app.include_router(not_found.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
