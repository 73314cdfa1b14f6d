# ============================================================================
# PROBE CORE TYPES
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Base class for probes
# PURPOSE: Probe interface shared by ping, delta and publish
# CREATED: 07 OCT 2026
# ============================================================================
"""
Probe Core Types

A probe is a named, independently scheduled health check that targets
one or more endpoints. The collector depends only on this interface:

    name           unique probe name
    schedule       ScheduleSpec for the calendar scheduler
    targets        ordered endpoint names
    execute()      one measurement against one endpoint
    group()        bucket key for a start timestamp
    transform()    fold one envelope into a bucket
    zero_template  initial value of a new bucket
    latest()       single value/classification from the series tails

execute() raises only when the tick is unrecoverable; mirror-specific
hiccups are returned as data.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from core.aggregation import AggregationBucket
from core.models import Endpoint, ResultEnvelope
from core.schedule import ScheduleSpec

if TYPE_CHECKING:
    from collector.collector import Collector

DAY_MS = 86400000


def start_of_day(timestamp: int) -> int:
    """Truncate an epoch-ms timestamp to 00:00 UTC of its day."""
    return timestamp - (timestamp % DAY_MS)


def day_of_year(moment: datetime) -> int:
    """1-based ordinal day of the year."""
    return moment.timetuple().tm_yday


class Probe(ABC):
    """
    Base class for probes.

    Instances are created once per collector and live for the process
    lifetime. The collector is injected as a read-only dependency for
    the feed snapshot, the endpoint registry, options and statistics.

    Attributes:
        name: Unique identifier for the probe
        schedule: When the probe fires
        zero_template: Initial bucket value, deep-copied per bucket
    """

    name: str = "unnamed"
    schedule: Optional[ScheduleSpec] = None
    zero_template: Any = None

    def __init__(self, collector: "Collector"):
        self._collector = collector

    @property
    def collector(self) -> "Collector":
        return self._collector

    @property
    def targets(self) -> List[str]:
        """Endpoint names this probe runs against; all registries by default."""
        return list(self._collector.registries.keys())

    @abstractmethod
    async def execute(self, endpoint: Endpoint) -> Any:
        """
        Measure one endpoint.

        Returns:
            Probe-specific payload

        Raises:
            Exception: Only when this tick cannot produce a result
        """

    @abstractmethod
    def group(self, timestamp: int) -> Any:
        """Bucket key for an envelope starting at `timestamp`."""

    @abstractmethod
    def transform(
        self,
        bucket: Any,
        envelope: ResultEnvelope,
        index: int,
        history: Sequence[ResultEnvelope],
    ) -> Any:
        """Fold `envelope` (history[index]) into `bucket`, returning the new value."""

    @abstractmethod
    def latest(
        self,
        aggregated: Sequence[AggregationBucket],
        raw: Sequence[ResultEnvelope],
    ) -> Any:
        """Single value or classification from the tails of both series."""

    def describe(self) -> dict:
        """Summary for listings."""
        return {
            "name": self.name,
            "schedule": self.schedule.to_dict() if self.schedule else None,
            "targets": self.targets,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = [
    "Probe",
    "DAY_MS",
    "start_of_day",
    "day_of_year",
]
