# ============================================================================
# RESULT ENVELOPE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core model - Normalized probe result
# PURPOSE: One immutable record per completed probe execution
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: ResultEnvelope, now_ms
# DEPENDENCIES: pydantic
# ============================================================================
"""
Result Envelope

Every completed probe execution produces exactly one envelope:

    {probe, registry, payload, start, end, duration}

Timestamps are milliseconds since the epoch. duration == end - start >= 0
is validated on construction. Envelopes handed to event listeners are
deep copies (model_copy(deep=True)) of the one written to the cache.
"""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class ResultEnvelope(BaseModel):
    """Normalized result of one probe execution against one endpoint."""

    model_config = ConfigDict(frozen=True)

    probe: str = Field(..., description="Probe name")
    registry: str = Field(..., description="Endpoint name")
    payload: Any = Field(default=None, description="Probe-specific result")
    start: int = Field(..., ge=0, description="Epoch ms when the tick started")
    end: int = Field(..., ge=0, description="Epoch ms when the probe completed")
    duration: int = Field(..., ge=0, description="end - start in ms")

    @model_validator(mode="after")
    def _check_duration(self) -> "ResultEnvelope":
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) precedes start ({self.start})")
        if self.duration != self.end - self.start:
            raise ValueError("duration must equal end - start")
        return self

    @classmethod
    def build(cls, probe: str, registry: str, payload: Any, start: int, end: int) -> "ResultEnvelope":
        """Create an envelope, deriving duration from the timestamps."""
        return cls(
            probe=probe,
            registry=registry,
            payload=payload,
            start=start,
            end=end,
            duration=end - start,
        )

    @property
    def cache_key(self) -> str:
        """Key used to persist the envelope: registry/probe/start."""
        return f"{self.registry}/{self.probe}/{self.start}"


__all__ = ["ResultEnvelope", "now_ms"]
