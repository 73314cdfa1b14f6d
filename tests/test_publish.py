# ============================================================================
# PUBLISH PROBE TESTS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Tests - Publish probe
# PURPOSE: Verify versioning, manifest updates, publish outcomes and buckets
# CREATED: 13 OCT 2026
# ============================================================================
"""
Publish Probe Tests

Covers:
1. year.dayOfYear.patch version derivation
2. execute() with a fake publish command
3. Publish command failures are reported as data
4. Metadata failures are unrecoverable ticks
5. Publish arguments with and without credentials
6. Daily success/failure buckets

Run with:
    pytest tests/test_publish.py -v
"""

import asyncio
import base64
import json
import httpx
import pytest
import threading
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from collector import CalendarScheduler, Collector, CollectorOptions
from core.config import build_registries
from core.errors import ProbeError, PublishCommandError
from core.models import ResultEnvelope
from probes import PublishProbe, next_version
from probes.core import DAY_MS


# ============================================================================
# HELPERS
# ============================================================================

REGISTRIES = build_registries({"npmjs": "https://registry.test/"})


def _publisher(error=None):
    publisher = MagicMock()
    publisher.load = AsyncMock()
    publisher.publish = AsyncMock(side_effect=error)
    return publisher


def _metadata_handler(latest="2000.1.0"):
    def handler(request):
        return httpx.Response(200, json={"name": "npm-publish-probe", "dist-tags": {"latest": latest}})
    return handler


def _make_probe(tmp_path, handler=None, publisher=None, npm_auth=None, silent=False):
    (tmp_path / "package.json").write_text(json.dumps({"name": "npm-publish-probe", "version": "0.0.0"}))
    collector = Collector(
        CollectorOptions(
            registries=REGISTRIES,
            transport=httpx.MockTransport(handler or _metadata_handler()),
            publisher=publisher or _publisher(),
            publish_dir=str(tmp_path),
            npm_auth=npm_auth,
            silent=silent,
            probes=[],
        ),
        scheduler=CalendarScheduler(autostart=False),
    )
    return PublishProbe(collector)


def _envelope(start, published, elapsed):
    return ResultEnvelope.build("publish", "npmjs", {"published": published, "time": elapsed}, start, start + elapsed)


# ============================================================================
# VERSIONING
# ============================================================================

class TestNextVersion:
    """Tests for next_version()."""

    NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)  # day 290

    def test_same_day_increments_patch(self):
        assert next_version("2026.290.3", now=self.NOW) == "2026.290.4"

    def test_new_day_resets_patch(self):
        assert next_version("2026.289.7", now=self.NOW) == "2026.290.0"

    def test_same_day_previous_year_resets(self):
        assert next_version("2025.290.1", now=self.NOW) == "2026.290.0"

    def test_prerelease_suffix_ignored(self):
        assert next_version("2026.290.1-beta.0", now=self.NOW) == "2026.290.2"

    def test_invalid_version(self):
        with pytest.raises(ValueError):
            next_version("latest", now=self.NOW)


# ============================================================================
# EXECUTION
# ============================================================================

class TestPublishExecute:
    """Tests for execute()."""

    def test_successful_publish(self, tmp_path):
        publisher = _publisher()
        probe = _make_probe(tmp_path, publisher=publisher)

        payload = asyncio.run(probe.execute(REGISTRIES["npmjs"]))

        assert payload["published"] is True
        assert payload["time"] >= 0
        assert "error" not in payload
        assert payload["version"] == next_version("2000.1.0")

        manifest = json.loads((tmp_path / "package.json").read_text())
        assert manifest["version"] == payload["version"]
        publisher.load.assert_awaited_once_with({})
        publisher.publish.assert_awaited_once_with([str(tmp_path), "--registry=https://registry.test/"])

    def test_publish_failure_is_data(self, tmp_path):
        probe = _make_probe(tmp_path, publisher=_publisher(PublishCommandError("E403 forbidden")))

        payload = asyncio.run(probe.execute(REGISTRIES["npmjs"]))

        assert payload["published"] is False
        assert payload["error"] == "E403 forbidden"

    def test_load_failure_is_data(self, tmp_path):
        publisher = _publisher()
        publisher.load.side_effect = PublishCommandError("npm executable not found on PATH")
        probe = _make_probe(tmp_path, publisher=publisher)

        payload = asyncio.run(probe.execute(REGISTRIES["npmjs"]))

        assert payload["published"] is False
        publisher.publish.assert_not_awaited()

    def test_metadata_not_found_raises(self, tmp_path):
        probe = _make_probe(tmp_path, handler=lambda request: httpx.Response(404))
        with pytest.raises(ProbeError):
            asyncio.run(probe.execute(REGISTRIES["npmjs"]))

    def test_metadata_unreachable_raises(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        probe = _make_probe(tmp_path, handler=handler)
        with pytest.raises(ProbeError):
            asyncio.run(probe.execute(REGISTRIES["npmjs"]))

    def test_metadata_without_latest_raises(self, tmp_path):
        probe = _make_probe(tmp_path, handler=lambda request: httpx.Response(200, json={"name": "x"}))
        with pytest.raises(ProbeError):
            asyncio.run(probe.execute(REGISTRIES["npmjs"]))

    def test_missing_manifest_raises(self, tmp_path):
        probe = _make_probe(tmp_path)
        (tmp_path / "package.json").unlink()
        with pytest.raises(ProbeError):
            asyncio.run(probe.execute(REGISTRIES["npmjs"]))

    def test_manifest_written_off_event_loop(self, tmp_path):
        probe = _make_probe(tmp_path)
        write = probe.write_manifest
        threads = []

        def recording_write(version):
            threads.append(threading.get_ident())
            return write(version)

        probe.write_manifest = recording_write
        payload = asyncio.run(probe.execute(REGISTRIES["npmjs"]))

        assert payload["published"] is True
        assert threads and threads[0] != threading.get_ident()

    def test_arguments_with_credentials(self, tmp_path):
        probe = _make_probe(tmp_path, npm_auth={"username": "probe", "password": "secret"})
        token = base64.b64encode(b"probe:secret").decode("ascii")

        assert probe.arguments(REGISTRIES["npmjs"]) == [
            str(tmp_path),
            "--registry=https://registry.test/",
            f"--_auth={token}",
        ]

    def test_silent_config(self, tmp_path):
        probe = _make_probe(tmp_path, silent=True)
        assert probe.config == {"loglevel": "silent"}

    def test_targets_canonical_registry(self, tmp_path):
        probe = _make_probe(tmp_path)
        assert probe.targets == ["npmjs"]


# ============================================================================
# AGGREGATION
# ============================================================================

class TestPublishAggregation:
    """Tests for transform() and latest()."""

    def test_daily_success_rate(self, tmp_path):
        probe = _make_probe(tmp_path)
        history = [
            _envelope(DAY_MS + 1000, True, 4000),
            _envelope(DAY_MS + 2000, False, 9000),
            _envelope(2 * DAY_MS, True, 3000),
        ]
        reduce = probe.collector.aggregate(probe.group, probe.transform, probe.zero_template)
        result = reduce(history)

        assert [bucket.key for bucket in result] == [DAY_MS, 2 * DAY_MS]
        assert result[0].values == {
            "success": {"count": 1, "time": 4000},
            "failure": {"count": 1, "time": 9000},
            "total": 2,
            "percentage": 50.0,
        }
        assert probe.latest(result, history)["percentage"] == 100.0
        assert probe.zero_template["total"] == 0

    def test_process(self):
        assert PublishProbe.process(None, 10, "2026.290.0") == {
            "published": True,
            "time": 10,
            "version": "2026.290.0",
        }
        assert PublishProbe.process("boom", 10) == {"published": False, "time": 10, "error": "boom"}
