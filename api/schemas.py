# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Response schemas
# PURPOSE: Pydantic models for API responses
# CREATED: 15 OCT 2026
# ============================================================================
"""
API Schemas

Response models for the collector API.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from core.contracts import ProbeStatus


# ============================================================================
# PROBE SCHEMAS
# ============================================================================

class ProbeResponse(BaseModel):
    """A registered probe."""
    name: str
    schedule: Optional[Dict[str, Any]] = None
    targets: List[str] = Field(default_factory=list)


class ProbeListResponse(BaseModel):
    """Registered probes."""
    probes: List[ProbeResponse]
    count: int


class BucketResponse(BaseModel):
    """One aggregated bucket."""
    key: Any
    values: Any


class SeriesResponse(BaseModel):
    """Aggregated series for one probe on one registry."""
    probe: str
    registry: str
    samples: int
    latest: Any = None
    status: Optional[ProbeStatus] = None
    aggregated: List[BucketResponse] = Field(default_factory=list)


# ============================================================================
# STATUS SCHEMAS
# ============================================================================

class ProbeStatusEntry(BaseModel):
    """Latest value of one probe on one registry."""
    probe: str
    registry: str
    samples: int
    latest: Any = None
    status: Optional[ProbeStatus] = None
    last_run: Optional[int] = Field(None, description="Start of the newest envelope (epoch ms)")


class StatusResponse(BaseModel):
    """Latest values across every probe and registry."""
    state: str
    entries: List[ProbeStatusEntry] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None


__all__ = [
    "ProbeResponse",
    "ProbeListResponse",
    "BucketResponse",
    "SeriesResponse",
    "ProbeStatusEntry",
    "StatusResponse",
    "ErrorResponse",
]
