# ============================================================================
# NPM PUBLISHER
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Infrastructure - Publish command collaborator
# PURPOSE: Run `npm publish` for the publish probe
# CREATED: 09 OCT 2026
# ============================================================================
"""
NPM Publisher

Two-step contract used by the publish probe:

    await publisher.load({"loglevel": "silent"})
    await publisher.publish(["/path/to/package", "--_auth=..."])

Both raise PublishCommandError with a readable message on failure.
The npm CLI runs as an asyncio subprocess, so publishing never blocks
the event loop.
"""

import asyncio
import logging
import shutil
from typing import Any, Dict, List, Optional

from core.errors import PublishCommandError

logger = logging.getLogger(__name__)


class NpmPublisher:
    """`npm publish` via the npm CLI."""

    def __init__(self, executable: str = "npm", timeout_seconds: float = 300.0):
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self._config: Dict[str, Any] = {}
        self._resolved: Optional[str] = None

    async def load(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Resolve the npm executable and remember CLI configuration.

        Raises:
            PublishCommandError: If npm is not installed
        """
        resolved = shutil.which(self.executable)
        if resolved is None:
            raise PublishCommandError(f"{self.executable} executable not found on PATH")

        self._resolved = resolved
        self._config = dict(config or {})

    def command(self, args: List[str]) -> List[str]:
        """Full argv for a publish call."""
        argv = [self._resolved or self.executable, "publish", *args]
        for key, value in self._config.items():
            argv.append(f"--{key}={value}")
        return argv

    async def publish(self, args: List[str]) -> None:
        """
        Publish the package directory given in args.

        Raises:
            PublishCommandError: On non-zero exit or timeout
        """
        if self._resolved is None:
            await self.load(self._config)

        argv = self.command(args)
        logger.debug(f"Running {argv[0]} publish {args[0] if args else ''}")

        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise PublishCommandError(f"npm publish timed out after {self.timeout_seconds}s")

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise PublishCommandError(message or f"npm publish exited with code {process.returncode}")


__all__ = ["NpmPublisher"]
