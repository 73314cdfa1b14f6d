# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for collector status and probe series
# CREATED: 15 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes for the registry probe collector.

Two routers:
    health_router   /livez, /readyz (root level)
    router          /collector, /probes, /status (mounted under /api/v1)
"""

import logging
import math
from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from __version__ import __version__, BUILD_DATE
from core.contracts import ProbeStatus
from .schemas import (
    BucketResponse,
    ProbeListResponse,
    ProbeResponse,
    ProbeStatusEntry,
    SeriesResponse,
    StatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter(tags=["Health"])


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# These will be set by the main app at startup

_collector = None
_cache = None


def set_collector(collector, cache=None):
    """Set the collector (and the cache it writes to) for the routes."""
    global _collector, _cache
    _collector = collector
    _cache = cache if cache is not None else collector.options.cache


def get_collector():
    if _collector is None:
        raise HTTPException(500, "Collector not initialized")
    return _collector


def get_cache():
    if _cache is None or not hasattr(_cache, "history"):
        raise HTTPException(500, "Result cache not available")
    return _cache


def finite(value: Any) -> Any:
    """Replace NaN/inf (stdev of one sample, week bound) with None."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [finite(item) for item in value]
    return value


def _status(latest: Any) -> Optional[ProbeStatus]:
    return None if latest is None else ProbeStatus.classify(latest)


# ============================================================================
# HEALTH
# ============================================================================

@health_router.get("/livez")
async def liveness_probe():
    """Returns 200 while the process is alive."""
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


@health_router.get("/readyz")
async def readiness_probe():
    """
    Readiness probe.

    Ready once the change feed loaded and probes are scheduled.
    """
    if _collector is None or not _collector.state.is_ready():
        state = _collector.state.value if _collector is not None else "uninitialized"
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "state": state},
        )

    return {
        "status": "ready",
        "probes": [probe.name for probe in _collector.probes],
        "jobs": len(_collector.jobs),
    }


# ============================================================================
# COLLECTOR STATUS
# ============================================================================

@router.get("/collector", tags=["Collector"])
async def get_collector_status():
    """
    Get collector status and statistics.

    Returns running state, uptime, feed refreshes and tick counters.
    """
    return get_collector().stats


@router.get("/probes", response_model=ProbeListResponse, tags=["Probes"])
async def list_probes():
    """List registered probes with their schedules and targets."""
    collector = get_collector()
    probes = [ProbeResponse(**probe.describe()) for probe in collector.probes]
    return ProbeListResponse(probes=probes, count=len(probes))


@router.get("/status", response_model=StatusResponse, tags=["Probes"])
async def get_status():
    """Latest value per probe and registry, computed from cached envelopes."""
    collector = get_collector()
    cache = get_cache()

    entries: List[ProbeStatusEntry] = []
    for registry, probe_name in cache.pairs():
        if collector.probe(probe_name) is None:
            continue

        history = cache.history(registry, probe_name)
        try:
            _, latest = collector.summarize(probe_name, history)
        except Exception as e:
            logger.warning(f"Cannot summarize {probe_name} on {registry}: {e}")
            latest = None

        latest = finite(latest)
        entries.append(ProbeStatusEntry(
            probe=probe_name,
            registry=registry,
            samples=len(history),
            latest=latest,
            status=_status(latest),
            last_run=history[-1].start if history else None,
        ))

    return StatusResponse(state=collector.state.value, entries=entries)


@router.get("/probes/{probe}/{registry}", response_model=SeriesResponse, tags=["Probes"])
async def get_series(probe: str, registry: str):
    """Aggregated series and latest value for one probe on one registry."""
    collector = get_collector()
    cache = get_cache()

    if collector.probe(probe) is None:
        raise HTTPException(404, f"Probe not found: {probe}")
    if registry not in collector.registries:
        raise HTTPException(404, f"Registry not found: {registry}")

    history = cache.history(registry, probe)
    aggregated, latest = collector.summarize(probe, history)
    latest = finite(latest)

    return SeriesResponse(
        probe=probe,
        registry=registry,
        samples=len(history),
        latest=latest,
        status=_status(latest) if history else None,
        aggregated=[
            BucketResponse(key=bucket.key, values=finite(bucket.values))
            for bucket in aggregated
        ],
    )


__all__ = [
    "router",
    "health_router",
    "set_collector",
    "get_collector",
    "finite",
]
