# ============================================================================
# REGISTRY PROBE - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - FastAPI application entry point
# PURPOSE: Main application with the probe collector
# CREATED: 15 OCT 2026
# ============================================================================
"""
Registry Probe Main Application

FastAPI application that:
1. Runs the probe collector in the background
2. Keeps probe results in a bounded in-memory cache
3. Provides HTTP API for collector status and probe series

Environment:
    LOG_LEVEL, LOG_FORMAT=json     logging
    REGISTRIES_FILE                YAML endpoint registry
    NPM_USERNAME, NPM_PASSWORD     credentials for the publish probe
    COLLECTOR_SILENT=true          quiet probe ticks and npm output

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH

from api.routes import router, health_router, set_collector
from collector import Collector, CollectorOptions, MemoryCache
from core.config import get_defaults

# Configure logging using our structured logging system
from core.logging import ComponentType, configure_logging, get_logger

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__, component=ComponentType.API)

# Global instances
_collector: Collector = None


def npm_auth_from_env():
    """Publish credentials, or None when either variable is missing."""
    username = os.environ.get("NPM_USERNAME")
    password = os.environ.get("NPM_PASSWORD")
    if not username or not password:
        return None
    return {"username": username, "password": password}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Starts the collector on startup, stops it on shutdown.
    """
    global _collector

    logger.info(f"Starting Registry Probe v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    cache = MemoryCache(max_entries=get_defaults().collector.cache_max_entries)
    npm_auth = npm_auth_from_env()
    if npm_auth is None:
        logger.warning("NPM_USERNAME/NPM_PASSWORD not set, publish probe runs unauthenticated")

    _collector = Collector(CollectorOptions(
        cache=cache,
        npm_auth=npm_auth,
        silent=os.environ.get("COLLECTOR_SILENT", "").lower() == "true",
    ))

    # Set collector for API routes
    set_collector(_collector, cache)

    await _collector.start()
    logger.info("Collector started")

    yield

    # Shutdown
    logger.info("Shutting down Registry Probe...")

    await _collector.stop()

    logger.info("Registry Probe stopped")


# Create FastAPI app
app = FastAPI(
    title="Registry Probe",
    description=f"Epoch {EPOCH} package registry health collector",
    version=__version__,
    lifespan=lifespan,
)

# Include health check routes (no prefix - /livez, /readyz)
app.include_router(health_router)

# Include API routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Registry Probe",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
