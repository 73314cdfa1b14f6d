# ============================================================================
# NPM PUBLISHER TESTS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Tests - npm CLI publish command
# PURPOSE: Verify argv construction and subprocess failure handling
# CREATED: 16 OCT 2026
# ============================================================================
"""
NPM Publisher Tests

The npm executable is patched out; no subprocess touches a registry.

Run with:
    pytest tests/test_npm_publisher.py -v
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from core.errors import PublishCommandError
from infrastructure import NpmPublisher


def _process(returncode=0, stderr=b""):
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(b"", stderr))
    process.wait = AsyncMock()
    return process


class TestNpmPublisher:
    """Tests for NpmPublisher."""

    def test_load_missing_executable(self):
        with patch("infrastructure.npm_publisher.shutil.which", return_value=None):
            with pytest.raises(PublishCommandError):
                asyncio.run(NpmPublisher().load({}))

    def test_command_includes_config(self):
        publisher = NpmPublisher()
        with patch("infrastructure.npm_publisher.shutil.which", return_value="/usr/bin/npm"):
            asyncio.run(publisher.load({"loglevel": "silent"}))

        assert publisher.command(["/pkg", "--registry=https://registry.test/"]) == [
            "/usr/bin/npm", "publish", "/pkg", "--registry=https://registry.test/", "--loglevel=silent",
        ]

    def test_publish_success(self):
        publisher = NpmPublisher()
        with patch("infrastructure.npm_publisher.shutil.which", return_value="/usr/bin/npm"), \
                patch("asyncio.create_subprocess_exec", AsyncMock(return_value=_process())) as spawn:
            asyncio.run(publisher.publish(["/pkg"]))

        assert spawn.await_args.args[:3] == ("/usr/bin/npm", "publish", "/pkg")

    def test_publish_failure(self):
        publisher = NpmPublisher()
        process = _process(returncode=1, stderr=b"npm ERR! 403 Forbidden")
        with patch("infrastructure.npm_publisher.shutil.which", return_value="/usr/bin/npm"), \
                patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(PublishCommandError) as excinfo:
                asyncio.run(publisher.publish(["/pkg"]))

        assert "403" in str(excinfo.value)
