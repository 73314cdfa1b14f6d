# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Infrastructure - External command wrappers
# PURPOSE: Collaborators that talk to tools outside the process
# CREATED: 09 OCT 2026
# ============================================================================
"""
Infrastructure module for Registry Probe.

Provides:
- NpmPublisher: `npm publish` wrapper used by the publish probe
"""

from infrastructure.npm_publisher import NpmPublisher

__all__ = [
    "NpmPublisher",
]
