# ============================================================================
# ENDPOINT REGISTRY
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Static endpoint configuration
# PURPOSE: Map registry names to Endpoint descriptors
# CREATED: 02 OCT 2026
# ============================================================================
"""
Endpoint Registry

Read-only mapping of registry name -> Endpoint, loaded once at startup.
The canonical registry is always called "npmjs".

Override with a YAML file (REGISTRIES_FILE) shaped like:

    npmjs:
      href: https://registry.npmjs.org/
    mirror:
      href: https://mirror.example.com/
      timeout: 5
"""

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

import yaml

from core.models import Endpoint

logger = logging.getLogger(__name__)

CANONICAL = "npmjs"

DEFAULT_REGISTRIES: Dict[str, str] = {
    "npmjs": "https://registry.npmjs.org/",
    "yarnpkg": "https://registry.yarnpkg.com/",
    "npmmirror": "https://registry.npmmirror.com/",
}


def build_registries(config: Mapping[str, Union[str, Mapping]]) -> Mapping[str, Endpoint]:
    """
    Build an immutable endpoint mapping from plain configuration.

    Values are either a URL string or a mapping with `href` and an
    optional `timeout` (seconds).
    """
    registries: Dict[str, Endpoint] = {}
    for name, value in config.items():
        if isinstance(value, str):
            registries[name] = Endpoint.from_url(name, value)
        elif isinstance(value, Mapping) and value.get("href"):
            registries[name] = Endpoint.from_url(name, value["href"], timeout=value.get("timeout"))
        else:
            raise ValueError(f"Registry '{name}' needs an href")
    return MappingProxyType(registries)


def load_registries(path: Optional[Union[str, Path]] = None) -> Mapping[str, Endpoint]:
    """
    Load endpoints from YAML, falling back to DEFAULT_REGISTRIES.

    Args:
        path: YAML file; defaults to $REGISTRIES_FILE when set
    """
    path = path or os.environ.get("REGISTRIES_FILE")
    if not path:
        return build_registries(DEFAULT_REGISTRIES)

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of registry name to endpoint")

    registries = build_registries(data)
    logger.info(f"Loaded {len(registries)} registries from {path}")
    return registries


__all__ = [
    "CANONICAL",
    "DEFAULT_REGISTRIES",
    "build_registries",
    "load_registries",
]
