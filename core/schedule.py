# ============================================================================
# SCHEDULE SPECIFICATION
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Calendar patterns
# PURPOSE: Describe when a probe fires
# CREATED: 05 OCT 2026
# ============================================================================
"""
Schedule Specification

A ScheduleSpec matches wall-clock times (UTC) by second, minute and
hour. Each field is an explicit list of values or a Range(start, end,
step); an unset field matches every value, except `second`, which
defaults to 0 (fire once per matching minute).

    ScheduleSpec(second=[0, 30])              # twice a minute
    ScheduleSpec(minute=Range(0, 59, 10))     # every 10 minutes
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

# One day of minutes is enough to find a match for any hour/minute pattern
MAX_SEARCH_MINUTES = 24 * 60 + 1


@dataclass(frozen=True)
class Range:
    """Inclusive stepped range of calendar values."""
    start: int
    end: int
    step: int = 1

    def __post_init__(self):
        if self.step < 1:
            raise ValueError("Range step must be >= 1")
        if self.end < self.start:
            raise ValueError("Range end must be >= start")

    def __contains__(self, value: int) -> bool:
        return self.start <= value <= self.end and (value - self.start) % self.step == 0

    def __iter__(self):
        return iter(range(self.start, self.end + 1, self.step))


FieldSpec = Union[None, int, Range, Iterable[int]]


def _expand(value: FieldSpec, upper: int, name: str) -> Optional[FrozenSet[int]]:
    """Normalize a field into the set of matching values in [0, upper)."""
    if value is None:
        return None
    if isinstance(value, int):
        value = [value]
    values = frozenset(v for v in value if 0 <= v < upper)
    if not values:
        raise ValueError(f"ScheduleSpec.{name} matches no value in 0..{upper - 1}")
    return values


class ScheduleSpec:
    """Calendar pattern over second, minute and hour."""

    def __init__(
        self,
        second: FieldSpec = None,
        minute: FieldSpec = None,
        hour: FieldSpec = None,
    ):
        self.second = _expand(second, 60, "second") if second is not None else frozenset({0})
        self.minute = _expand(minute, 60, "minute")
        self.hour = _expand(hour, 24, "hour")

    def matches(self, moment: datetime) -> bool:
        """Check if a moment (truncated to the second) matches."""
        return (
            moment.second in self.second
            and (self.minute is None or moment.minute in self.minute)
            and (self.hour is None or moment.hour in self.hour)
        )

    def next_fire_time(self, after: datetime) -> datetime:
        """
        First matching moment strictly after `after`.

        Raises:
            ValueError: If nothing matches within a day (cannot happen
                for valid specs)
        """
        seconds = sorted(self.second)
        moment = after.replace(microsecond=0) + timedelta(seconds=1)

        for _ in range(MAX_SEARCH_MINUTES):
            if (self.minute is None or moment.minute in self.minute) and (
                self.hour is None or moment.hour in self.hour
            ):
                for second in seconds:
                    if second >= moment.second:
                        return moment.replace(second=second)
            moment = moment.replace(second=0) + timedelta(minutes=1)

        raise ValueError(f"No fire time found for {self!r}")

    def to_dict(self) -> Dict[str, Optional[List[int]]]:
        return {
            "second": sorted(self.second),
            "minute": sorted(self.minute) if self.minute is not None else None,
            "hour": sorted(self.hour) if self.hour is not None else None,
        }

    def __repr__(self) -> str:
        return f"ScheduleSpec({self.to_dict()})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ScheduleSpec):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self.second, self.minute, self.hour))


__all__ = [
    "Range",
    "ScheduleSpec",
]
