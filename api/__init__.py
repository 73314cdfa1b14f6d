# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for collector status and probe series
# CREATED: 15 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the registry probe collector.
"""

from .routes import router, health_router, set_collector
from .schemas import (
    ProbeResponse,
    SeriesResponse,
    StatusResponse,
)

__all__ = [
    "router",
    "health_router",
    "set_collector",
    "ProbeResponse",
    "SeriesResponse",
    "StatusResponse",
]
