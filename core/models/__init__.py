# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 14 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Pydantic models shared by the collector, the probes and the API.
"""

from core.models.endpoint import Endpoint
from core.models.envelope import ResultEnvelope, now_ms
from core.models.document import ModuleDocument, FeedEntry, ChangesResponse, parse_timestamp

__all__ = [
    # Endpoint
    "Endpoint",
    # Envelope
    "ResultEnvelope",
    "now_ms",
    # Documents
    "ModuleDocument",
    "FeedEntry",
    "ChangesResponse",
    "parse_timestamp",
]
