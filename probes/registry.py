# ============================================================================
# PROBE REGISTRY
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Built-in probe discovery
# PURPOSE: Register probe classes so collectors can instantiate them
# CREATED: 07 OCT 2026
# ============================================================================
"""
Probe Registry

Keeps probe *classes* by name. A collector instantiates each class once
with itself as the injected dependency.

Usage:
    # Decorator registration
    @register_probe
    class PingProbe(Probe):
        name = "ping"
        ...

    # Default probe set for a collector
    probe_classes = get_registry().get_all()
"""

import logging
from typing import Dict, List, Optional, Type

from probes.core import Probe

logger = logging.getLogger(__name__)


class ProbeRegistry:
    """Registry of probe classes, in registration order."""

    def __init__(self):
        self._probes: Dict[str, Type[Probe]] = {}

    def register(self, probe_class: Type[Probe]) -> Type[Probe]:
        """
        Register a probe class under its `name`.

        Raises:
            ValueError: If the class has no name
        """
        name = getattr(probe_class, "name", None)
        if not name or name == Probe.name:
            raise ValueError(f"{probe_class.__name__} has no probe name")

        if name in self._probes and self._probes[name] is not probe_class:
            logger.warning(f"Overwriting probe: {name}")

        self._probes[name] = probe_class
        logger.debug(f"Registered probe: {name} ({probe_class.__name__})")
        return probe_class

    def unregister(self, name: str) -> bool:
        """
        Remove a probe by name.

        Returns:
            True if probe was removed
        """
        if name in self._probes:
            del self._probes[name]
            return True
        return False

    def get(self, name: str) -> Optional[Type[Probe]]:
        """Get probe class by name."""
        return self._probes.get(name)

    def get_all(self) -> List[Type[Probe]]:
        """Get all registered probe classes."""
        return list(self._probes.values())

    def names(self) -> List[str]:
        return list(self._probes.keys())

    def __len__(self) -> int:
        return len(self._probes)

    def __contains__(self, name: str) -> bool:
        return name in self._probes


# ============================================================================
# GLOBAL REGISTRY & DECORATOR
# ============================================================================

_registry: Optional[ProbeRegistry] = None


def get_registry() -> ProbeRegistry:
    """Get the global probe registry."""
    global _registry
    if _registry is None:
        _registry = ProbeRegistry()
    return _registry


def register_probe(probe_class: Type[Probe]) -> Type[Probe]:
    """Class decorator adding a probe to the global registry."""
    return get_registry().register(probe_class)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ProbeRegistry",
    "get_registry",
    "register_probe",
]
