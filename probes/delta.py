# ============================================================================
# DELTA PROBE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Probe - Replication lag
# PURPOSE: Compare recent canonical changes against each mirror
# CREATED: 08 OCT 2026
# ============================================================================
"""
Delta Probe

Every 10 minutes, fetch each module of the collector's change feed
from the target registry and compare it with the feed's document.

Equality predicates (origin vs variation):
- name: equal, non-empty strings
- time: equal `modified` and identical key sets
- versions: identical key sets
- dist-tags: equal `latest`

Lag in ms:
- all predicates agree: 0
- both documents present: |mirror.modified - origin.modified|
- mirror document absent (error, 404, not_found body, bad JSON):
  now - origin.unpublished, or now - origin.created

Result: {modules: [ids with lag > 0], lag: describe(lags)}.

Aggregation buckets ticks per UTC day into interval classes
(none/hour/day/week by default) by mean lag, collecting lagging module
names. latest() turns the last day into a score in [0, 1].
"""

import asyncio
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import httpx
from pydantic import ValidationError

from core.aggregation import AggregationBucket
from core.config import DeltaDefaults, get_defaults
from core.errors import ProbeError
from core.models import Endpoint, ModuleDocument, ResultEnvelope, now_ms
from core.schedule import Range, ScheduleSpec
from probes.core import Probe, start_of_day
from probes.registry import register_probe

logger = logging.getLogger(__name__)

NOT_FOUND = re.compile(r'"error"\s*:\s*"not_found"')


# ============================================================================
# EQUALITY PREDICATES
# ============================================================================

def _same_name(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a == b


def _same_time(a: Optional[Dict[str, Any]], b: Optional[Dict[str, Any]]) -> bool:
    if a is None or b is None:
        return False
    return a.get("modified") == b.get("modified") and set(a) == set(b)


def _same_versions(a: Optional[Dict[str, Any]], b: Optional[Dict[str, Any]]) -> bool:
    if a is None or b is None:
        return False
    return set(a) == set(b)


def _same_latest(a: Optional[Dict[str, Any]], b: Optional[Dict[str, Any]]) -> bool:
    if a is None or b is None:
        return False
    return a.get("latest") == b.get("latest")


# Document field -> (model attribute, predicate)
EQUALITY: Dict[str, Tuple[str, Callable[[Any, Any], bool]]] = {
    "name": ("name", _same_name),
    "time": ("time", _same_time),
    "versions": ("versions", _same_versions),
    "dist-tags": ("dist_tags", _same_latest),
}


def mismatches(origin: ModuleDocument, variation: ModuleDocument) -> List[str]:
    """Fields whose predicate disagrees."""
    return [
        field
        for field, (attribute, equal) in EQUALITY.items()
        if not equal(getattr(origin, attribute), getattr(variation, attribute))
    ]


def parse_document(body: Union[None, str, bytes, ModuleDocument]) -> Optional[ModuleDocument]:
    """Mirror response body to a document; None when absent or unusable."""
    if body is None or isinstance(body, ModuleDocument):
        return body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if NOT_FOUND.search(body):
        return None
    try:
        return ModuleDocument.model_validate_json(body)
    except ValidationError:
        return None


# ============================================================================
# PROBE
# ============================================================================

@register_probe
class DeltaProbe(Probe):
    """Replication lag of each registry against the canonical change feed."""

    name = "delta"
    schedule = ScheduleSpec(minute=Range(0, 59, 10))

    def __init__(self, collector, settings: Optional[DeltaDefaults] = None):
        super().__init__(collector)
        self.settings = settings or get_defaults().delta
        self.intervals = tuple(self.settings.intervals)
        self.zero_template = [
            {"interval": name, "count": 0, "modules": []}
            for name, _ in self.intervals
        ]

    # =========================================================================
    # LAG
    # =========================================================================

    @staticmethod
    def lag(
        equal: bool,
        origin: ModuleDocument,
        variation: Optional[ModuleDocument] = None,
        now: Optional[int] = None,
    ) -> int:
        """Absolute lag in ms between origin and variation."""
        if equal:
            return 0

        if variation is not None:
            main = origin.modified_ms
            mirror = variation.modified_ms
            if main is not None and mirror is not None:
                return abs(mirror - main)

        # Mirror has nothing usable: lagging since the module changed state
        base = origin.unpublished_ms or origin.created_ms or origin.modified_ms
        if base is None:
            return 0
        now = now_ms() if now is None else now
        return abs(now - base)

    def diff(
        self,
        origin: ModuleDocument,
        body: Union[None, str, bytes, ModuleDocument],
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Compare a feed document with a mirror response.

        Returns:
            {"module": name, "lag": ms}
        """
        variation = parse_document(body)
        if variation is None:
            return {"module": origin.name, "lag": self.lag(False, origin, None, now)}

        fields = mismatches(origin, variation)
        if fields:
            logger.debug(f"{origin.name}: mismatched {fields}")
        return {"module": origin.name, "lag": self.lag(not fields, origin, variation, now)}

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute(self, endpoint: Endpoint) -> Dict[str, Any]:
        feed = self.collector.feed
        if not feed:
            raise ProbeError("Change feed is empty", probe=self.name)

        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async with httpx.AsyncClient(
            timeout=endpoint.timeout or self.settings.request_timeout_seconds,
            transport=self.collector.transport,
            follow_redirects=True,
        ) as client:

            async def compare(entry) -> Dict[str, Any]:
                async with semaphore:
                    body = await self.fetch(client, endpoint, entry.id)
                result = self.diff(entry.doc, body)
                result["module"] = result["module"] or entry.id
                return result

            results = await asyncio.gather(*(compare(entry) for entry in feed))

        lags = [result["lag"] for result in results]
        return {
            "modules": [result["module"] for result in results if result["lag"] > 0],
            "lag": self.collector.calculate(lags).to_dict(),
        }

    async def fetch(self, client: httpx.AsyncClient, endpoint: Endpoint, module: str) -> Optional[str]:
        """Module document from a mirror; None on any failure."""
        target = endpoint.document(module)
        try:
            response = await client.get(target.href, headers={"Accept": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Fetch {target.href} failed: {e}")
            return None

        if response.status_code != 200:
            return None
        return response.text

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def classify(self, lag: float) -> str:
        """Interval class name for a lag in ms."""
        for name, bound in self.intervals:
            if lag <= bound:
                return name
        return self.intervals[-1][0]

    def group(self, timestamp: int) -> int:
        return start_of_day(timestamp)

    def transform(
        self,
        bucket: List[Dict[str, Any]],
        envelope: ResultEnvelope,
        index: int,
        history: Sequence[ResultEnvelope],
    ) -> List[Dict[str, Any]]:
        payload = envelope.payload or {}
        interval = self.classify(payload.get("lag", {}).get("mean", 0))

        for entry in bucket:
            if entry["interval"] == interval:
                entry["count"] += 1
                for module in payload.get("modules", []):
                    if module not in entry["modules"]:
                        entry["modules"].append(module)
        return bucket

    def latest(
        self,
        aggregated: Sequence[AggregationBucket],
        raw: Sequence[ResultEnvelope],
    ) -> Optional[float]:
        """
        Lag score of the most recent day.

        0 means every tick was in sync, 1 means every tick fell in the
        worst interval class.
        """
        if not aggregated:
            return None

        key = aggregated[-1].key
        counts = {
            bucket.values["interval"]: bucket.values["count"]
            for bucket in aggregated
            if bucket.key == key
        }
        total = sum(counts.values())
        if total == 0:
            return 0.0

        names = [name for name, _ in self.intervals]
        steps = max(len(names) - 1, 1)
        score = sum(counts.get(name, 0) * i / steps for i, name in enumerate(names))
        return round(score / total, 4)


__all__ = [
    "DeltaProbe",
    "EQUALITY",
    "mismatches",
    "parse_document",
]
