# ============================================================================
# PROBES MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Probe plugin system
# PURPOSE: Probe interface and the built-in ping / delta / publish probes
# CREATED: 07 OCT 2026
# ============================================================================
"""
Probes Module

Plugin-based registry health probes:
- ping: latency of every registry (every 30 seconds)
- delta: replication lag against the canonical change feed (every 10 minutes)
- publish: publish round trip on the canonical registry (every 6 minutes)

Architecture:
- Probe: Base class for probes
- ProbeRegistry: Probe class discovery and registration
- Collector (collector package): schedules and runs probes

Usage:
    from probes import Probe, register_probe

    @register_probe
    class MyProbe(Probe):
        name = "mine"
        schedule = ScheduleSpec(second=[15])

        async def execute(self, endpoint):
            return {"ok": True}
"""

from probes.core import Probe, start_of_day, day_of_year
from probes.registry import ProbeRegistry, register_probe, get_registry

# Import built-in probes so they register themselves
from probes.ping import PingProbe
from probes.delta import DeltaProbe
from probes.publish import PublishProbe, next_version

__all__ = [
    # Core types
    "Probe",
    "start_of_day",
    "day_of_year",
    # Registry
    "ProbeRegistry",
    "register_probe",
    "get_registry",
    # Built-in probes
    "PingProbe",
    "DeltaProbe",
    "PublishProbe",
    "next_version",
]
