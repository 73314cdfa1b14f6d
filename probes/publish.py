# ============================================================================
# PUBLISH PROBE
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Probe - Publish round trip
# PURPOSE: Publish a test package and time the full round trip
# CREATED: 09 OCT 2026
# ============================================================================
"""
Publish Probe

Every 6 minutes against the canonical registry:

1. Fetch the live metadata of the probe package
2. Derive the next version: year.dayOfYear.patch, where patch counts
   up within a day and resets to 0 on a new day
3. Write the package manifest
4. load() and publish() through the injected publish command
5. Report {published, time, version, error?}

Metadata, version and manifest failures make the tick unrecoverable
(ProbeError). A failing publish command is a normal result with
published = False so the daily failure rate can be tracked.
"""

import asyncio
import base64
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from core.aggregation import AggregationBucket
from core.config import PublishDefaults, get_defaults
from core.errors import ProbeError, PublishCommandError
from core.models import Endpoint, ResultEnvelope
from core.schedule import Range, ScheduleSpec
from infrastructure import NpmPublisher
from probes.core import Probe, day_of_year, start_of_day
from probes.registry import register_probe

logger = logging.getLogger(__name__)


class PublishCommand(Protocol):
    """Publish collaborator: both calls raise PublishCommandError on failure."""

    async def load(self, config: Dict[str, Any]) -> None:
        ...

    async def publish(self, args: List[str]) -> None:
        ...


def next_version(latest: str, now: Optional[datetime] = None) -> str:
    """
    Version following `latest` under the year.dayOfYear.patch scheme.

    Raises:
        ValueError: If latest is not a major.minor.patch version
    """
    now = now or datetime.now(timezone.utc)
    parts = latest.split("-")[0].split(".")
    if len(parts) != 3:
        raise ValueError(f"Unexpected version: {latest}")
    major, minor, patch = (int(part) for part in parts)

    year = now.year
    day = day_of_year(now)
    patch = patch + 1 if (major == year and minor == day) else 0
    return f"{year}.{day}.{patch}"


@register_probe
class PublishProbe(Probe):
    """Time to publish a package to the canonical registry."""

    name = "publish"
    schedule = ScheduleSpec(minute=Range(0, 59, 6))
    zero_template = {
        "success": {"count": 0, "time": 0},
        "failure": {"count": 0, "time": 0},
        "total": 0,
        "percentage": 0.0,
    }

    def __init__(
        self,
        collector,
        publisher: Optional[PublishCommand] = None,
        settings: Optional[PublishDefaults] = None,
    ):
        super().__init__(collector)
        self.settings = settings or get_defaults().publish

        options = collector.options
        self.package_dir = Path(options.publish_dir or self.settings.package_dir)
        self.manifest = self.package_dir / "package.json"

        if publisher is None:
            publisher = options.publisher if options.publisher is not None else NpmPublisher()
        self.publisher = publisher

        self.config: Dict[str, Any] = {"loglevel": "silent"} if options.silent else {}

    @property
    def targets(self) -> List[str]:
        return [self.settings.registry]

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute(self, endpoint: Endpoint) -> Dict[str, Any]:
        started = time.perf_counter()

        latest = await self.fetch_latest(endpoint)
        try:
            version = next_version(latest)
        except ValueError as e:
            raise ProbeError(str(e), probe=self.name) from e
        await asyncio.to_thread(self.write_manifest, version)

        error = None
        try:
            await self.publisher.load(self.config)
            await self.publisher.publish(self.arguments(endpoint))
        except PublishCommandError as e:
            error = str(e) or type(e).__name__

        elapsed = int((time.perf_counter() - started) * 1000)
        return self.process(error, elapsed, version)

    async def fetch_latest(self, endpoint: Endpoint) -> str:
        """
        Latest published version of the probe package.

        Raises:
            ProbeError: On transport error, non-200 status or bad document
        """
        target = endpoint.document(self.settings.package_name)
        try:
            async with httpx.AsyncClient(
                timeout=endpoint.timeout or self.settings.request_timeout_seconds,
                transport=self.collector.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(target.href, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise ProbeError(f"Metadata fetch failed: {e}", probe=self.name) from e

        if response.status_code != 200:
            raise ProbeError(
                f"Metadata fetch returned HTTP {response.status_code}",
                probe=self.name,
            )

        try:
            return response.json()["dist-tags"]["latest"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProbeError(f"No latest dist-tag in metadata: {e}", probe=self.name) from e

    def write_manifest(self, version: str) -> Dict[str, Any]:
        """
        Set `version` in the package manifest.

        Raises:
            ProbeError: If the manifest cannot be read or written
        """
        try:
            with open(self.manifest, "r") as f:
                manifest = json.load(f)
            manifest["version"] = version
            with open(self.manifest, "w") as f:
                f.write(json.dumps(manifest, indent=2) + "\n")
        except (OSError, ValueError) as e:
            raise ProbeError(f"Cannot update {self.manifest}: {e}", probe=self.name) from e
        return manifest

    def arguments(self, endpoint: Endpoint) -> List[str]:
        """Publish arguments: package dir, registry and optional auth."""
        args = [str(self.package_dir), f"--registry={endpoint.href}"]

        auth = self.collector.options.npm_auth
        if auth and auth.get("username") and auth.get("password"):
            token = base64.b64encode(f"{auth['username']}:{auth['password']}".encode("utf-8"))
            args.append(f"--_auth={token.decode('ascii')}")
        return args

    @staticmethod
    def process(error: Optional[str], elapsed: int, version: Optional[str] = None) -> Dict[str, Any]:
        result: Dict[str, Any] = {"published": error is None, "time": elapsed}
        if version:
            result["version"] = version
        if error is not None:
            result["error"] = error
        return result

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def group(self, timestamp: int) -> int:
        return start_of_day(timestamp)

    def transform(
        self,
        bucket: Dict[str, Any],
        envelope: ResultEnvelope,
        index: int,
        history: Sequence[ResultEnvelope],
    ) -> Dict[str, Any]:
        payload = envelope.payload or {}
        outcome = "success" if payload.get("published") else "failure"

        bucket[outcome]["count"] += 1
        bucket[outcome]["time"] += payload.get("time", 0)
        bucket["total"] += 1
        bucket["percentage"] = round(100.0 * bucket["success"]["count"] / bucket["total"], 2)
        return bucket

    def latest(
        self,
        aggregated: Sequence[AggregationBucket],
        raw: Sequence[ResultEnvelope],
    ) -> Optional[Dict[str, Any]]:
        if not aggregated:
            return None
        return aggregated[-1].values


__all__ = [
    "PublishProbe",
    "PublishCommand",
    "next_version",
]
