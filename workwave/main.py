"""WorkWave API -- Main Application Entry Point

Creates the FastAPI application, configures CORS middleware and error
handlers, registers the worker routes under the /api prefix, and wraps
the whole app in the Socket.IO ASGI application for the live location
channel.

Run with::

    uvicorn workwave.main:app --host 0.0.0.0 --port 5500 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workwave.api.deps import async_session_factory, close_collaborators, engine
from workwave.api.errors import register_exception_handlers
from workwave.core.config import settings
from workwave.models import Base
from workwave.realtime import LocationRelay, create_asgi_app, get_relay, set_relay, store_writer

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Optionally create missing tables (AUTO_CREATE_TABLES, dev only).
      - Start the location relay that backs the realtime channel.

    Shutdown:
      - Write every buffered position that has not been flushed yet.
      - Close the shared collaborators and the database engine.
    """
    # Importing handlers is sufficient to register all Socket.IO events
    from workwave.realtime import handlers  # noqa: F401

    if settings.auto_create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    set_relay(
        LocationRelay(
            flush=store_writer(async_session_factory),
            delay_seconds=settings.location_flush_delay_seconds,
        )
    )
    logger.info(
        "%s %s started (location flush delay %.0fs)",
        settings.app_name,
        settings.app_version,
        settings.location_flush_delay_seconds,
    )

    yield

    written = await get_relay().flush_all()
    logger.info("Shutdown: flushed %d buffered positions", written)
    set_relay(None)
    await close_collaborators()
    await engine.dispose()


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

api = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

register_exception_handlers(api)


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

api.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@api.get("/health", tags=["Health"])
async def health():
    """Lightweight health check for load balancers and readiness probes."""
    return {"status": "ok", "version": settings.app_version}


# ---------------------------------------------------------------------------
# Register API route modules
# ---------------------------------------------------------------------------

from workwave.api.routes import workers  # noqa: E402

api.include_router(workers.router, prefix=settings.api_prefix)


# ---------------------------------------------------------------------------
# Socket.IO wrapper
# ---------------------------------------------------------------------------
# Requests under /ws/socket.io go to Socket.IO; everything else, including
# the lifespan events, is passed through to the FastAPI app.
# ---------------------------------------------------------------------------

app = create_asgi_app(api)
