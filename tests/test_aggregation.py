# ============================================================================
# AGGREGATION PIPELINE TESTS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Tests - Group / transform reducer
# PURPOSE: Verify bucketing, zero templates, ordering and flattening
# CREATED: 11 OCT 2026
# ============================================================================
"""
Aggregation Pipeline Tests

Covers:
1. Envelopes in one group produce one bucket
2. Zero templates are copied per bucket, never shared
3. Order-sensitive transforms see the full history
4. Unsorted input is rejected
5. List-valued buckets are flattened

Run with:
    pytest tests/test_aggregation.py -v
"""

import pytest

from core.aggregation import AggregationBucket, aggregate, flatten
from core.models import ResultEnvelope
from core.statistics import moving_average


# ============================================================================
# HELPERS
# ============================================================================

def _envelope(start, payload=None, probe="test", registry="npmjs"):
    return ResultEnvelope.build(probe, registry, payload, start, start + 10)


def _count(bucket, envelope, index, history):
    bucket["count"] += 1
    return bucket


# ============================================================================
# TESTS
# ============================================================================

class TestAggregate:
    """Tests for aggregate()."""

    def test_single_group(self):
        reduce = aggregate(lambda start: 1, _count, {"count": 0})
        result = reduce([_envelope(100), _envelope(200), _envelope(300)])

        assert len(result) == 1
        assert result[0].key == 1
        assert result[0].values == {"count": 3}

    def test_groups_in_first_seen_order(self):
        reduce = aggregate(lambda start: start // 1000, _count, {"count": 0})
        result = reduce([_envelope(100), _envelope(1100), _envelope(1200), _envelope(2500)])

        assert [bucket.key for bucket in result] == [0, 1, 2]
        assert [bucket.values["count"] for bucket in result] == [1, 2, 1]

    def test_zero_template_not_shared(self):
        template = {"count": 0, "modules": []}

        def collect(bucket, envelope, index, history):
            bucket["modules"].append(envelope.start)
            return bucket

        reduce = aggregate(lambda start: start, collect, template)
        result = reduce([_envelope(1), _envelope(2)])

        assert result[0].values["modules"] == [1]
        assert result[1].values["modules"] == [2]
        assert template == {"count": 0, "modules": []}

    def test_empty_input(self):
        reduce = aggregate(lambda start: start, _count, {"count": 0})
        assert reduce([]) == []

    def test_order_sensitive_transform(self):
        def smooth(bucket, envelope, index, history):
            return moving_average([entry.payload for entry in history[:index + 1]])

        reduce = aggregate(lambda start: start, smooth, None)
        forward = reduce([_envelope(1, 10), _envelope(2, 1)])
        backward = reduce([_envelope(1, 1), _envelope(2, 10)])

        assert forward[-1].values == pytest.approx(8.2)
        assert backward[-1].values == pytest.approx(2.8)

    def test_single_bucket_fold_is_order_sensitive(self):
        def smooth(bucket, envelope, index, history):
            return moving_average([entry.payload for entry in history[:index + 1]])

        reduce = aggregate(lambda start: "all", smooth, None)
        forward = reduce([_envelope(1, 10), _envelope(2, 1), _envelope(3, 4)])
        backward = reduce([_envelope(1, 4), _envelope(2, 1), _envelope(3, 10)])

        assert len(forward) == 1
        assert forward[0].values == pytest.approx(7.36)
        assert forward[0].values != pytest.approx(backward[0].values)

    def test_unsorted_input_raises(self):
        reduce = aggregate(lambda start: start, _count, {"count": 0})
        with pytest.raises(ValueError):
            reduce([_envelope(200), _envelope(100)])

    def test_equal_starts_allowed(self):
        reduce = aggregate(lambda start: start, _count, {"count": 0})
        result = reduce([_envelope(100), _envelope(100)])
        assert result[0].values == {"count": 2}


class TestFlatten:
    """Tests for flatten()."""

    def test_list_values_expand(self):
        buckets = [
            AggregationBucket(key=0, values=[{"interval": "none"}, {"interval": "hour"}]),
            AggregationBucket(key=1, values={"total": 1}),
        ]
        result = flatten(buckets)

        assert [bucket.to_dict() for bucket in result] == [
            {"key": 0, "values": {"interval": "none"}},
            {"key": 0, "values": {"interval": "hour"}},
            {"key": 1, "values": {"total": 1}},
        ]

    def test_list_template_through_reducer(self):
        template = [{"interval": "none", "count": 0}, {"interval": "hour", "count": 0}]

        def first(bucket, envelope, index, history):
            bucket[0]["count"] += 1
            return bucket

        result = aggregate(lambda start: 0, first, template)([_envelope(1), _envelope(2)])

        assert len(result) == 2
        assert result[0].values == {"interval": "none", "count": 2}
        assert result[1].values == {"interval": "hour", "count": 0}
