# ============================================================================
# COLLECTOR MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Probe execution runtime
# PURPOSE: Export the collector and its collaborators
# CREATED: 10 OCT 2026
# ============================================================================
"""
Collector Module

The collector schedules probes against registry endpoints, wraps each
tick into a ResultEnvelope and hands it to listeners and the cache.

Usage:
    from collector import Collector, CollectorOptions, MemoryCache

    collector = Collector(CollectorOptions(cache=MemoryCache()))
    collector.on("probe::ran", on_result)
    await collector.start()
"""

from collector.events import EventChannel, Listener
from collector.scheduler import CalendarScheduler, ScheduledJob, Range, ScheduleSpec
from collector.cache import MemoryCache, ResultCache
from collector.feed import ChangeFeedClient
from collector.collector import Collector, CollectorOptions, now_ms

__all__ = [
    "Collector",
    "CollectorOptions",
    "now_ms",
    # Events
    "EventChannel",
    "Listener",
    # Scheduling
    "CalendarScheduler",
    "ScheduledJob",
    "Range",
    "ScheduleSpec",
    # Storage
    "MemoryCache",
    "ResultCache",
    # Feed
    "ChangeFeedClient",
]
