# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for the collector and each probe
# CREATED: 02 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the collector and the built-in probes.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

# Bundled test package published by the publish probe
PACKAGE_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_PUBLISH_DIR = PACKAGE_ROOT / "publish"


@dataclass(frozen=True)
class CollectorDefaults:
    """
    Defaults for the collector.

    Controls the change feed refresh and result retention.
    """
    feed_url: str = (
        "https://replicate.npmjs.com/_changes"
        "?descending=true&limit=25&include_docs=true"
    )
    feed_interval_ms: int = 180000  # 3 minutes
    feed_timeout_seconds: float = 30.0

    # MemoryCache retention per registry/probe pair
    cache_max_entries: int = 2880  # one day of 30 second pings

    @classmethod
    def from_env(cls) -> "CollectorDefaults":
        """Create from environment variables."""
        return cls(
            feed_url=os.getenv("FEED_URL", cls.feed_url),
            feed_interval_ms=int(os.getenv("FEED_INTERVAL_MS", 180000)),
            feed_timeout_seconds=float(os.getenv("FEED_TIMEOUT_SECONDS", 30.0)),
            cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", 2880)),
        )


@dataclass(frozen=True)
class PingDefaults:
    """
    Defaults for the ping probe.

    A reading of 0 marks a failed attempt.
    """
    attempts: int = 5
    timeout_seconds: float = 10.0
    window: int = 5  # ticks in the moving average
    slow_factor: float = 1.5

    @classmethod
    def from_env(cls) -> "PingDefaults":
        """Create from environment variables."""
        return cls(
            attempts=int(os.getenv("PING_ATTEMPTS", 5)),
            timeout_seconds=float(os.getenv("PING_TIMEOUT_SECONDS", 10.0)),
            slow_factor=float(os.getenv("PING_SLOW_FACTOR", 1.5)),
        )


@dataclass(frozen=True)
class DeltaDefaults:
    """
    Defaults for the delta probe.

    Interval classes are (name, upper bound in ms), checked in order.
    A lag of 0 always lands in the first class.
    """
    intervals: Tuple[Tuple[str, float], ...] = (
        ("none", 0),
        ("hour", 3600000),
        ("day", 86400000),
        ("week", float("inf")),
    )
    request_timeout_seconds: float = 30.0
    max_concurrency: int = 10

    @classmethod
    def from_env(cls) -> "DeltaDefaults":
        """Create from environment variables."""
        return cls(
            request_timeout_seconds=float(os.getenv("DELTA_TIMEOUT_SECONDS", 30.0)),
            max_concurrency=int(os.getenv("DELTA_MAX_CONCURRENCY", 10)),
        )


@dataclass(frozen=True)
class PublishDefaults:
    """
    Defaults for the publish probe.

    The package in package_dir is re-versioned and published every tick.
    """
    package_name: str = "npm-publish-probe"
    package_dir: str = str(DEFAULT_PUBLISH_DIR)
    registry: str = "npmjs"
    request_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "PublishDefaults":
        """Create from environment variables."""
        return cls(
            package_name=os.getenv("PUBLISH_PACKAGE_NAME", "npm-publish-probe"),
            package_dir=os.getenv("PUBLISH_PACKAGE_DIR", str(DEFAULT_PUBLISH_DIR)),
            registry=os.getenv("PUBLISH_REGISTRY", "npmjs"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    collector: CollectorDefaults = field(default_factory=CollectorDefaults)
    ping: PingDefaults = field(default_factory=PingDefaults)
    delta: DeltaDefaults = field(default_factory=DeltaDefaults)
    publish: PublishDefaults = field(default_factory=PublishDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            collector=CollectorDefaults.from_env(),
            ping=PingDefaults.from_env(),
            delta=DeltaDefaults.from_env(),
            publish=PublishDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "CollectorDefaults",
    "PingDefaults",
    "DeltaDefaults",
    "PublishDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
