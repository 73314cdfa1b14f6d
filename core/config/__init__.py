# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 02 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration, defaults and the endpoint registry.
"""

from core.config.defaults import (
    CollectorDefaults,
    PingDefaults,
    DeltaDefaults,
    PublishDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)
from core.config.registries import (
    CANONICAL,
    DEFAULT_REGISTRIES,
    build_registries,
    load_registries,
)

__all__ = [
    "CollectorDefaults",
    "PingDefaults",
    "DeltaDefaults",
    "PublishDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
    "CANONICAL",
    "DEFAULT_REGISTRIES",
    "build_registries",
    "load_registries",
]
