# ============================================================================
# CALENDAR SCHEDULER
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Recurring calendar jobs on asyncio
# PURPOSE: Turn a schedule spec into timer ticks for probe jobs
# CREATED: 05 OCT 2026
# ============================================================================
"""
Calendar Scheduler

Runs recurring jobs against a ScheduleSpec (see core.schedule).

Each ScheduledJob runs its own background loop. Every tick runs the
callback as a separate task, so a slow tick never delays the next one
and overlapping ticks of the same job are possible.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from core.schedule import Range, ScheduleSpec

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# JOBS
# ============================================================================

class ScheduledJob:
    """Handle for a recurring job; cancel() stops future ticks."""

    def __init__(
        self,
        name: str,
        spec: ScheduleSpec,
        callback: Callable[[], Any],
        clock: Clock = utcnow,
    ):
        self.name = name
        self.spec = spec
        self.callback = callback
        self._clock = clock
        self._loop_task: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()
        self._cancelled = False
        self.fired = 0
        self.next_invocation: Optional[datetime] = None

    def start(self) -> None:
        """Start the timer loop on the running event loop."""
        if self._loop_task is None and not self._cancelled:
            self._loop_task = asyncio.create_task(self._run(), name=f"job-{self.name}")

    async def _run(self) -> None:
        while not self._cancelled:
            now = self._clock()
            self.next_invocation = self.spec.next_fire_time(now)
            delay = (self.next_invocation - now).total_seconds()
            await asyncio.sleep(max(delay, 0))
            if self._cancelled:
                break
            self.fire()

    def fire(self) -> Optional[asyncio.Task]:
        """
        Run one tick now without waiting for it.

        Returns:
            The tick task when the callback is async, else None
        """
        self.fired += 1
        try:
            result = self.callback()
        except Exception as e:
            logger.error(f"Job {self.name} tick failed: {e}")
            return None

        if not inspect.isawaitable(result):
            return None

        task = asyncio.ensure_future(result)
        self._ticks.add(task)
        task.add_done_callback(self._tick_done)
        return task

    async def trigger(self) -> None:
        """Run one tick now and wait for it to finish."""
        task = self.fire()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _tick_done(self, task: asyncio.Task) -> None:
        self._ticks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Job {self.name} tick failed: {task.exception()}")

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the timer loop and any tick still in flight."""
        self._cancelled = True
        if self._loop_task is not None:
            self._loop_task.cancel()
        for task in list(self._ticks):
            task.cancel()
        self._ticks.clear()


class CalendarScheduler:
    """Keeps named recurring jobs; names are unique per scheduler."""

    def __init__(self, clock: Clock = utcnow, autostart: bool = True):
        self._clock = clock
        self._autostart = autostart
        self._jobs: Dict[str, ScheduledJob] = {}

    def schedule_job(
        self,
        name: str,
        spec: ScheduleSpec,
        callback: Callable[[], Any],
    ) -> ScheduledJob:
        """
        Register a recurring job, replacing any job with the same name.

        Must be called with a running event loop unless autostart=False.
        """
        existing = self._jobs.pop(name, None)
        if existing is not None:
            logger.warning(f"Replacing scheduled job: {name}")
            existing.cancel()

        job = ScheduledJob(name, spec, callback, clock=self._clock)
        self._jobs[name] = job
        if self._autostart:
            job.start()

        logger.debug(f"Scheduled job {name} ({spec!r})")
        return job

    def get(self, name: str) -> Optional[ScheduledJob]:
        return self._jobs.get(name)

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    def cancel_all(self) -> None:
        """Cancel every job."""
        for job in self._jobs.values():
            job.cancel()
        self._jobs.clear()

    def __len__(self) -> int:
        return len(self._jobs)


__all__ = [
    "Range",
    "ScheduleSpec",
    "ScheduledJob",
    "CalendarScheduler",
    "utcnow",
]
