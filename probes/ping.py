# ============================================================================
# PING PROBE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Probe - Endpoint latency
# PURPOSE: Timed HTTP round trips against every registry
# CREATED: 08 OCT 2026
# ============================================================================
"""
Ping Probe

Every 30 seconds, issue five sequential timed GET requests to each
endpoint and report {mean, minimum, maximum, stdev} in milliseconds.

A failed attempt (timeout, connection error, invalid URL, non-2xx
status) reads as 0. Zero is otherwise impossible, so downstream it
marks the endpoint as down; one bad attempt never aborts the batch.

Aggregation:
- group: the start timestamp itself (one bucket per tick)
- transform: exponentially weighted moving average over the trailing
  five ticks, per numeric field
- latest: "down" when the moving mean is 0, "slow" when the current
  mean exceeds slow_factor x the previous tick's moving mean, else the
  current mean
"""

import logging
import math
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from core.aggregation import AggregationBucket
from core.config import PingDefaults, get_defaults
from core.contracts import ProbeStatus
from core.models import Endpoint, ResultEnvelope
from core.schedule import ScheduleSpec
from core.statistics import moving_average, trailing
from probes.core import Probe
from probes.registry import register_probe

logger = logging.getLogger(__name__)

# Smallest reading reported for a successful attempt; 0 means failure
MIN_READING_MS = 0.001


@register_probe
class PingProbe(Probe):
    """Latency of each registry endpoint."""

    name = "ping"
    schedule = ScheduleSpec(second=[0, 30])
    zero_template: Dict[str, float] = {}

    def __init__(self, collector, settings: Optional[PingDefaults] = None):
        super().__init__(collector)
        self.settings = settings or get_defaults().ping

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute(self, endpoint: Endpoint) -> Dict[str, float]:
        readings = []
        async with self._client(endpoint) as client:
            for _ in range(self.settings.attempts):
                readings.append(await self.ping(endpoint, client))

        logger.debug(f"Ping {endpoint.name}: {readings}")
        return self.collector.calculate(readings).to_dict()

    async def ping(self, endpoint: Endpoint, client: Optional[httpx.AsyncClient] = None) -> float:
        """
        One timed request.

        Returns:
            Round trip in ms, or 0 when the attempt failed
        """
        if client is None:
            async with self._client(endpoint) as own_client:
                return await self.ping(endpoint, own_client)

        started = time.perf_counter()
        try:
            response = await client.get(endpoint.href)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Ping {endpoint.name} failed: {type(e).__name__}: {e}")
            return 0

        elapsed = (time.perf_counter() - started) * 1000
        return max(elapsed, MIN_READING_MS)

    def _client(self, endpoint: Endpoint) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=endpoint.timeout or self.settings.timeout_seconds,
            transport=self.collector.transport,
            follow_redirects=True,
        )

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def group(self, timestamp: int) -> int:
        return timestamp

    def transform(
        self,
        bucket: Dict[str, float],
        envelope: ResultEnvelope,
        index: int,
        history: Sequence[ResultEnvelope],
    ) -> Dict[str, float]:
        window = trailing(history, index, self.settings.window)

        series: Dict[str, List[float]] = {}
        for entry in window:
            for key, value in (entry.payload or {}).items():
                if _is_reading(value):
                    series.setdefault(key, []).append(float(value))

        return {
            key: moving_average(values, self.settings.window)
            for key, values in series.items()
        }

    def latest(
        self,
        aggregated: Sequence[AggregationBucket],
        raw: Sequence[ResultEnvelope],
    ) -> Any:
        if not aggregated:
            return None

        average = aggregated[-1].values.get("mean")
        if average == 0:
            return ProbeStatus.DOWN.value

        current = (raw[-1].payload or {}).get("mean") if raw else None
        if current is None or len(aggregated) < 2:
            return current

        # The last bucket already folds in the current reading
        previous = aggregated[-2].values.get("mean")
        if previous and current > self.settings.slow_factor * previous:
            return ProbeStatus.SLOW.value
        return current


def _is_reading(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


__all__ = ["PingProbe"]
