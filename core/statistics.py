# ============================================================================
# DESCRIPTIVE STATISTICS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Pure numeric helpers
# PURPOSE: Summary statistics and moving averages for probe readings
# CREATED: 02 OCT 2026
# ============================================================================
"""
Descriptive Statistics

describe() summarises a non-empty sequence of readings as
{mean, minimum, maximum, stdev}. The standard deviation is the
sample deviation (divides by n - 1), so a single reading yields
stdev = nan. Callers treat that as a degenerate sample, not a failure.

moving_average() folds a trailing window chronologically:
    avg = (x + (window - 1) * avg) / window
seeded with the oldest value, so later readings weigh more and the
result depends on order.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, Sequence


@dataclass(frozen=True)
class Description:
    """Summary of a sequence of readings."""
    mean: float
    minimum: float
    maximum: float
    stdev: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def describe(samples: Sequence[float]) -> Description:
    """
    Describe a non-empty sequence of numbers.

    Raises:
        ValueError: If samples is empty
    """
    values = [float(value) for value in samples]
    n = len(values)
    if n == 0:
        raise ValueError("describe() requires at least one sample")

    mean = sum(values) / n
    squared = sum((value - mean) ** 2 for value in values)

    if n > 1:
        stdev = math.sqrt(squared / (n - 1))
    else:
        stdev = math.nan

    return Description(
        mean=mean,
        minimum=min(values),
        maximum=max(values),
        stdev=stdev,
    )


def moving_average(values: Sequence[float], window: int = 5) -> float:
    """Exponentially weighted average of chronologically ordered values."""
    if window < 1:
        raise ValueError("window must be >= 1")
    if not values:
        raise ValueError("moving_average() requires at least one value")

    average = float(values[0])
    for value in values[1:]:
        average = (float(value) + (window - 1) * average) / window
    return average


def trailing(sequence: Sequence, index: int, size: int) -> Sequence:
    """Slice of up to `size` elements ending at `index` (inclusive)."""
    start = max(0, index - (size - 1))
    return sequence[start:index + 1]


__all__ = [
    "Description",
    "describe",
    "moving_average",
    "trailing",
]
