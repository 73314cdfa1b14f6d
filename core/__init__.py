# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models and statistics
# LAST_REVIEWED: 17 OCT 2026
# ============================================================================

from core.contracts import ProbeStatus, CollectorState, CollectorEvent
from core.errors import RegistryProbeError, ProbeError, FeedError, PublishCommandError
from core.models import (
    Endpoint,
    ResultEnvelope,
    ModuleDocument,
    FeedEntry,
    ChangesResponse,
)
from core.statistics import Description, describe, moving_average
from core.aggregation import AggregationBucket, aggregate, flatten

__all__ = [
    # Enums
    "ProbeStatus",
    "CollectorState",
    "CollectorEvent",
    # Errors
    "RegistryProbeError",
    "ProbeError",
    "FeedError",
    "PublishCommandError",
    # Models
    "Endpoint",
    "ResultEnvelope",
    "ModuleDocument",
    "FeedEntry",
    "ChangesResponse",
    # Statistics
    "Description",
    "describe",
    "moving_average",
    "AggregationBucket",
    "aggregate",
    "flatten",
]
