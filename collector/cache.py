# ============================================================================
# RESULT CACHE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Optional envelope persistence
# PURPOSE: Keep recent envelopes per registry/probe for aggregation
# CREATED: 06 OCT 2026
# ============================================================================
"""
Result Cache

The collector persists envelopes to any object exposing
set(key, value); set may return an awaitable. Keys are
"registry/probe/start". Without a cache nothing is persisted and
nothing else changes.

MemoryCache is the in-process implementation used by the HTTP API:
a bounded, start-ordered history per registry/probe pair.
"""

import bisect
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from core.models import ResultEnvelope

logger = logging.getLogger(__name__)


@runtime_checkable
class ResultCache(Protocol):
    """What the collector needs from a cache."""

    def set(self, key: str, value: Any) -> Any:
        ...


def split_key(key: str) -> Tuple[str, str, int]:
    """Parse "registry/probe/start"."""
    registry, probe, start = key.rsplit("/", 2)
    return registry, probe, int(start)


class MemoryCache:
    """Bounded in-memory envelope store."""

    def __init__(self, max_entries: int = 2880):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._store: Dict[str, Any] = {}
        # (registry, probe) -> sorted start timestamps
        self._index: Dict[Tuple[str, str], List[int]] = defaultdict(list)

    async def set(self, key: str, value: Any) -> None:
        """Store a value; last write wins for an existing key."""
        registry, probe, start = split_key(key)
        starts = self._index[(registry, probe)]

        if key not in self._store:
            bisect.insort(starts, start)
        self._store[key] = value

        while len(starts) > self.max_entries:
            oldest = starts.pop(0)
            self._store.pop(f"{registry}/{probe}/{oldest}", None)

    def get(self, key: str) -> Optional[Any]:
        return self._store.get(key)

    def history(self, registry: str, probe: str) -> List[ResultEnvelope]:
        """Envelopes for one registry/probe pair, oldest first."""
        return [
            self._store[f"{registry}/{probe}/{start}"]
            for start in self._index.get((registry, probe), [])
        ]

    def pairs(self) -> List[Tuple[str, str]]:
        """Known (registry, probe) pairs with at least one entry."""
        return sorted(pair for pair, starts in self._index.items() if starts)

    def clear(self) -> None:
        self._store.clear()
        self._index.clear()

    def __len__(self) -> int:
        return len(self._store)


__all__ = [
    "ResultCache",
    "MemoryCache",
    "split_key",
]
