# ============================================================================
# ERROR TYPES
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Exception hierarchy
# PURPOSE: Distinguish probe, feed and publish-command failures
# CREATED: 02 OCT 2026
# ============================================================================
"""
Error Types

Transport and parse problems are folded into probe payloads as data.
Only the conditions below are raised:

- ProbeError: a probe cannot produce a result for this tick
- FeedError: the change feed could not be refreshed
- PublishCommandError: the npm publish command failed
"""

from typing import Optional


class RegistryProbeError(Exception):
    """Base class for all registry probe errors."""


class ProbeError(RegistryProbeError):
    """Raised by Probe.execute() when a tick is unrecoverable."""

    def __init__(self, message: str, probe: Optional[str] = None):
        super().__init__(message)
        self.probe = probe


class FeedError(RegistryProbeError):
    """Raised when the canonical change feed cannot be fetched or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PublishCommandError(RegistryProbeError):
    """Raised by the publish collaborator; message is captured in the payload."""


__all__ = [
    "RegistryProbeError",
    "ProbeError",
    "FeedError",
    "PublishCommandError",
]
