# ============================================================================
# AGGREGATION PIPELINE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Generic group / transform reducer
# PURPOSE: Fold chronological envelopes into probe-defined buckets
# CREATED: 03 OCT 2026
# ============================================================================
"""
Aggregation Pipeline

aggregate(group, transform, zero_template) returns a reducer over a
chronologically ordered list of ResultEnvelopes:

1. key = group(envelope.start)
2. unseen keys start from a deep copy of zero_template
3. bucket.values = transform(bucket.values, envelope, index, history)

transform receives the whole history and the current index so probes
that need a trailing window (ping's moving average) can look backward.

The output is flattened: one AggregationBucket per key, or one per
element when a bucket's values are a list (delta's interval classes).
Keys come out in first-seen order, which is non-decreasing for sorted
input.
"""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence

from core.models import ResultEnvelope

GroupFn = Callable[[int], Any]
TransformFn = Callable[[Any, ResultEnvelope, int, Sequence[ResultEnvelope]], Any]
Reducer = Callable[[Sequence[ResultEnvelope]], List["AggregationBucket"]]


@dataclass
class AggregationBucket:
    """Aggregation slot keyed by a probe-defined function of time."""
    key: Any
    values: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "values": self.values}


def aggregate(group: GroupFn, transform: TransformFn, zero_template: Any) -> Reducer:
    """
    Build a reducer bound to a probe's group/transform/zero_template.

    Returns:
        Function mapping sorted envelopes to flattened buckets

    Raises (from the reducer):
        ValueError: If envelopes are not sorted by start time
    """

    def reduce(envelopes: Sequence[ResultEnvelope]) -> List[AggregationBucket]:
        history = list(envelopes)
        buckets: Dict[Any, AggregationBucket] = {}
        previous_start = None

        for index, envelope in enumerate(history):
            if previous_start is not None and envelope.start < previous_start:
                raise ValueError(
                    f"envelopes must be sorted by start time "
                    f"(index {index}: {envelope.start} < {previous_start})"
                )
            previous_start = envelope.start

            key = group(envelope.start)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = AggregationBucket(key=key, values=copy.deepcopy(zero_template))
                buckets[key] = bucket

            bucket.values = transform(bucket.values, envelope, index, history)

        return flatten(buckets.values())

    return reduce


def flatten(buckets) -> List[AggregationBucket]:
    """Expand list-valued buckets into one entry per element."""
    flat: List[AggregationBucket] = []
    for bucket in buckets:
        if isinstance(bucket.values, list):
            flat.extend(AggregationBucket(key=bucket.key, values=item) for item in bucket.values)
        else:
            flat.append(bucket)
    return flat


__all__ = [
    "AggregationBucket",
    "aggregate",
    "flatten",
]
