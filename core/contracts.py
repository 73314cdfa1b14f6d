# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Foundation - Core enums and event names
# PURPOSE: Status classifications, collector lifecycle and event channel names
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: ProbeStatus, CollectorState, CollectorEvent
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the registry probe system.

These values cross boundaries between the collector, the probes
and the HTTP surface.
"""

from enum import Enum


# ============================================================================
# STATUS ENUMS
# ============================================================================

class ProbeStatus(str, Enum):
    """
    Classification of the latest measurement of a probe.

    Ping reports DOWN/SLOW as literal strings; any other latest value
    is a number and maps to HEALTHY.
    """
    HEALTHY = "healthy"
    SLOW = "slow"
    DOWN = "down"

    @classmethod
    def classify(cls, latest) -> "ProbeStatus":
        """Map a probe's latest value onto a status."""
        if isinstance(latest, str):
            try:
                return cls(latest)
            except ValueError:
                return cls.HEALTHY
        return cls.HEALTHY


class CollectorState(str, Enum):
    """
    Collector startup lifecycle.

    State transitions:
        UNINITIALIZED -> FEED_LOADED -> PROBES_REGISTERED -> STOPPED

    PROBES_REGISTERED is unreachable until a feed refresh succeeded once,
    so the delta probe always has a reference set to diff against.
    """
    UNINITIALIZED = "uninitialized"
    FEED_LOADED = "feed_loaded"
    PROBES_REGISTERED = "probes_registered"
    STOPPED = "stopped"

    def is_ready(self) -> bool:
        """Check if probes are scheduled."""
        return self is CollectorState.PROBES_REGISTERED


# ============================================================================
# EVENT NAMES
# ============================================================================

class CollectorEvent(str, Enum):
    """Events emitted on a collector's event channel."""
    SCHEDULED = "probe::scheduled"   # (probe_name, timestamp)
    RAN = "probe::ran"               # (error | None, envelope | None)
    PROBE_ERROR = "probe::error"     # (error)
    ERROR = "error"                  # (error) feed refresh / cache failures

    @staticmethod
    def ran_for(probe_name: str) -> str:
        """Probe-scoped variant of RAN."""
        return f"{CollectorEvent.RAN.value}::{probe_name}"

    @staticmethod
    def error_for(probe_name: str) -> str:
        """Probe-scoped variant of PROBE_ERROR."""
        return f"{CollectorEvent.PROBE_ERROR.value}::{probe_name}"


__all__ = [
    "ProbeStatus",
    "CollectorState",
    "CollectorEvent",
]
