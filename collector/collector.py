# ============================================================================
# COLLECTOR
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Probe scheduling and result collection
# PURPOSE: Bind probes to endpoints, build envelopes, emit events, persist
# CREATED: 10 OCT 2026
# ============================================================================
"""
Collector

Owns the probe set and drives it:
1. Refresh the canonical change feed on a fixed interval
2. On the first successful refresh, instantiate and register all probes
   (UNINITIALIZED -> FEED_LOADED -> PROBES_REGISTERED)
3. Schedule one recurring job per (probe, target endpoint)
4. Wrap each tick's outcome into a ResultEnvelope
5. Emit events with deep copies; persist the original to the cache

Failure isolation: a failing probe tick, cache write or feed refresh is
reported through events and logs only. No failure stops the collector
or any other job.

Events (see CollectorEvent):
    probe::scheduled          (probe_name, timestamp)
    probe::ran                (error | None, envelope | None)
    probe::ran::<probe>       (error | None, envelope | None)
    probe::error              (error)
    probe::error::<probe>     (error)
    error                     (error)   feed refresh / cache failures
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import httpx

from core.aggregation import AggregationBucket, GroupFn, Reducer, TransformFn, aggregate
from core.config import get_defaults, load_registries
from core.contracts import CollectorEvent, CollectorState
from core.logging import log_checkpoint, log_context
from core.models import Endpoint, FeedEntry, ResultEnvelope, now_ms
from core.statistics import Description, describe
from collector.events import EventChannel, Listener
from collector.feed import ChangeFeedClient
from collector.scheduler import CalendarScheduler, ScheduledJob
from probes import Probe, get_registry

logger = logging.getLogger(__name__)


@dataclass
class CollectorOptions:
    """
    Collector configuration.

    Attributes:
        probes: Probe classes (or factories taking the collector);
            defaults to every registered probe
        cache: Object exposing set(key, value); None disables persistence
        npm_auth: {"username", "password"} for the publish probe
        silent: Log ticks at DEBUG and run npm with loglevel=silent
        registries: Endpoint mapping; defaults to load_registries()
        feed_url: Change feed URL override
        feed_interval_ms: Feed refresh interval override
        transport: httpx transport shared by probes and the feed client
        publisher: Publish command collaborator override
        publish_dir: Directory of the package the publish probe publishes
    """
    probes: Optional[Sequence[Callable[..., Probe]]] = None
    cache: Optional[Any] = None
    npm_auth: Optional[Dict[str, str]] = None
    silent: bool = False
    registries: Optional[Mapping[str, Endpoint]] = None
    feed_url: Optional[str] = None
    feed_interval_ms: Optional[int] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    publisher: Optional[Any] = None
    publish_dir: Optional[str] = None


class Collector:
    """
    Runs probes against registries and collects their results.

    One instance owns its event channel, scheduler jobs and feed
    snapshot. Probes receive the collector as a read-only dependency.
    """

    def __init__(
        self,
        options: Optional[CollectorOptions] = None,
        scheduler: Optional[CalendarScheduler] = None,
        feed_client: Optional[ChangeFeedClient] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize collector.

        Args:
            options: Collector options
            scheduler: Calendar scheduler (a new one if None)
            feed_client: Change feed client (built from defaults if None)
            clock: Epoch-ms clock used for envelope timestamps
        """
        self.options = options if options is not None else CollectorOptions()
        self.settings = get_defaults().collector
        self.registries: Mapping[str, Endpoint] = (
            self.options.registries if self.options.registries is not None else load_registries()
        )
        self.scheduler = scheduler if scheduler is not None else CalendarScheduler()
        if feed_client is None:
            feed_client = ChangeFeedClient(
                self.options.feed_url or self.settings.feed_url,
                timeout=self.settings.feed_timeout_seconds,
                transport=self.options.transport,
            )
        self.feed_client = feed_client
        self.feed_interval_ms = self.options.feed_interval_ms or self.settings.feed_interval_ms
        self.events = EventChannel()
        self._clock = clock

        # Shared state: feed is replaced by reference, probes/jobs only grow
        self.feed: List[FeedEntry] = []
        self.probes: List[Probe] = []
        self.jobs: List[ScheduledJob] = []

        # State
        self._state = CollectorState.UNINITIALIZED
        self._running = False
        self._stop_event = asyncio.Event()
        self._feed_task: Optional[asyncio.Task] = None
        self._cache_writes: Set[asyncio.Future] = set()
        self._tick_level = logging.DEBUG if self.options.silent else logging.INFO

        # Metrics
        self._started_at: Optional[datetime] = None
        self._ticks = 0
        self._envelopes = 0
        self._probe_errors = 0
        self._cache_errors = 0
        self._feed_refreshes = 0
        self._feed_errors = 0
        self._last_feed_at: Optional[datetime] = None

    @property
    def state(self) -> CollectorState:
        return self._state

    @property
    def transport(self) -> Optional[httpx.AsyncBaseTransport]:
        """httpx transport probes should use (None for the default)."""
        return self.options.transport

    def on(self, event: str, listener: Listener) -> Listener:
        """Subscribe to a collector event."""
        return self.events.on(event, listener)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """
        Start collecting.

        Refreshes the feed once right away, then keeps refreshing it in
        the background. Probes get registered by the first successful
        refresh, whichever attempt that is.
        """
        if self._running:
            logger.warning("Collector already running")
            return

        self._running = True
        self._started_at = datetime.now(timezone.utc)
        self._stop_event.clear()

        logger.info(
            f"Starting collector ({len(self.registries)} registries, "
            f"feed_interval={self.feed_interval_ms}ms)"
        )

        await self.refresh_feed()
        self._feed_task = asyncio.create_task(self._feed_loop(), name="collector-feed")

    async def stop(self) -> None:
        """
        Stop collecting.

        Cancels the feed loop and every scheduled job, then closes the
        event channel. Results in flight are dropped.
        """
        logger.info("Stopping collector")

        self._running = False
        self._stop_event.set()

        if self._feed_task:
            self._feed_task.cancel()
            try:
                await self._feed_task
            except asyncio.CancelledError:
                pass
            self._feed_task = None

        for job in self.jobs:
            job.cancel()
        self.scheduler.cancel_all()

        for write in list(self._cache_writes):
            write.cancel()
        self._cache_writes.clear()

        self.events.close()
        self._state = CollectorState.STOPPED

        logger.info(
            f"Collector stopped (ticks={self._ticks}, envelopes={self._envelopes}, "
            f"probe_errors={self._probe_errors}, feed_errors={self._feed_errors})"
        )

    # =========================================================================
    # FEED - Reference documents for the delta probe
    # =========================================================================

    async def _feed_loop(self) -> None:
        """Background loop refreshing the change feed."""
        interval = self.feed_interval_ms / 1000

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                break  # Stop event was set
            except asyncio.TimeoutError:
                pass

            await self.refresh_feed()

        logger.info("Feed loop stopped")

    async def refresh_feed(self) -> bool:
        """
        Replace the feed snapshot with the latest changes.

        On failure the previous feed stays in place and an `error`
        event is emitted.

        Returns:
            True if the feed was refreshed
        """
        try:
            feed = await self.feed_client.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._feed_errors += 1
            logger.error(f"Feed refresh failed: {e}")
            self.events.emit(CollectorEvent.ERROR.value, e)
            return False

        self.feed = feed
        self._feed_refreshes += 1
        self._last_feed_at = datetime.now(timezone.utc)
        logger.debug(f"Feed refreshed ({len(feed)} modules)")

        if self._state is CollectorState.UNINITIALIZED:
            self._state = CollectorState.FEED_LOADED
            log_checkpoint("feed_loaded", {"modules": len(feed)}, logger=logger)
            self.initialize()

        return True

    def initialize(self) -> List[Probe]:
        """
        Instantiate and register the configured probes.

        Raises:
            RuntimeError: Unless the feed has been loaded and probes are
                not registered yet
        """
        if self._state is not CollectorState.FEED_LOADED:
            raise RuntimeError(f"Cannot register probes in state {self._state.value}")

        factories = self.options.probes
        if factories is None:
            factories = get_registry().get_all()

        logger.info(f"Initializing with {len(factories)} probes")

        for factory in factories:
            try:
                probe = factory(self)
            except Exception as e:
                logger.error(f"Cannot create probe {getattr(factory, 'name', factory)}: {e}")
                continue
            self.register(probe)

        self._state = CollectorState.PROBES_REGISTERED
        log_checkpoint(
            "probes_registered",
            {"probes": [probe.name for probe in self.probes], "jobs": len(self.jobs)},
            logger=logger,
        )
        return list(self.probes)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    @staticmethod
    def is_valid(probe: Any) -> bool:
        """A probe needs a name, a schedule and a callable execute."""
        return bool(
            getattr(probe, "name", None)
            and getattr(probe, "schedule", None)
            and callable(getattr(probe, "execute", None))
        )

    def register(self, probe: Probe) -> List[ScheduledJob]:
        """
        Schedule a probe against each of its targets.

        Invalid probes are ignored.

        Returns:
            Jobs created, one per known target endpoint
        """
        if not self.is_valid(probe):
            logger.warning(f"Ignoring invalid probe: {probe!r}")
            return []

        jobs = []
        for name in probe.targets:
            if name not in self.registries:
                logger.warning(f"Probe {probe.name}: unknown registry {name}")
                continue

            job = self.scheduler.schedule_job(
                f"{probe.name}::{name}",
                probe.schedule,
                self._job(probe, name),
            )
            jobs.append(job)
            logger.debug(f"Added probe {probe.name} for registry {name}")
            self.events.emit(CollectorEvent.SCHEDULED.value, probe.name, self._clock())

        self.probes.append(probe)
        self.jobs.extend(jobs)
        return jobs

    def _job(self, probe: Probe, endpoint_name: str):
        async def tick() -> None:
            await self.run(probe, endpoint_name)

        return tick

    def probe(self, name: str) -> Optional[Probe]:
        """Registered probe by name."""
        for probe in self.probes:
            if probe.name == name:
                return probe
        return None

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def run(self, probe: Probe, endpoint_name: str) -> Optional[ResultEnvelope]:
        """
        Execute one tick of a probe against one endpoint.

        Returns:
            The envelope, or None if the probe failed
        """
        endpoint = self.registries[endpoint_name]
        ran = self.wrap(probe, endpoint_name)
        self._ticks += 1

        with log_context(probe=probe.name, registry=endpoint_name, tick=self._ticks):
            try:
                payload = await probe.execute(endpoint)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                return ran(e, None)
            return ran(None, payload)

    def wrap(self, probe: Probe, endpoint_name: str) -> Callable[[Optional[BaseException], Any], Optional[ResultEnvelope]]:
        """
        Completion callback for one execution.

        The start timestamp is taken now; the end timestamp when the
        callback is invoked.
        """
        start = self._clock()
        collector = self

        def ran(error: Optional[BaseException], payload: Any = None) -> Optional[ResultEnvelope]:
            end = max(collector._clock(), start)

            if error is not None:
                collector._probe_errors += 1
                logger.warning(f"Probe {probe.name} failed on {endpoint_name}: {error}")
                collector.events.emit(CollectorEvent.RAN.value, error, None)
                collector.events.emit(CollectorEvent.ran_for(probe.name), error, None)
                collector.events.emit(CollectorEvent.PROBE_ERROR.value, error)
                collector.events.emit(CollectorEvent.error_for(probe.name), error)
                return None

            envelope = ResultEnvelope.build(probe.name, endpoint_name, payload, start, end)
            collector._envelopes += 1
            logger.log(
                collector._tick_level,
                f"Probe {probe.name} ran on {endpoint_name} in {envelope.duration}ms",
            )

            collector.events.emit(CollectorEvent.RAN.value, None, envelope.model_copy(deep=True))
            collector.events.emit(CollectorEvent.ran_for(probe.name), None, envelope.model_copy(deep=True))
            collector._persist(envelope)
            return envelope

        return ran

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _persist(self, envelope: ResultEnvelope) -> None:
        """Write the envelope to the cache; failures only emit `error`."""
        cache = self.options.cache
        setter = getattr(cache, "set", None) if cache is not None else None
        if not callable(setter):
            return

        key = envelope.cache_key
        try:
            result = setter(key, envelope)
        except Exception as e:
            self._cache_failed(key, e)
            return

        if inspect.isawaitable(result):
            write = asyncio.ensure_future(result)
            self._cache_writes.add(write)
            write.add_done_callback(lambda done: self._cache_written(key, done))

    def _cache_written(self, key: str, write: asyncio.Future) -> None:
        self._cache_writes.discard(write)
        if write.cancelled():
            return
        if write.exception() is not None:
            self._cache_failed(key, write.exception())

    def _cache_failed(self, key: str, error: BaseException) -> None:
        self._cache_errors += 1
        logger.error(f"Cache write failed for {key}: {error}")
        self.events.emit(CollectorEvent.ERROR.value, error)

    # =========================================================================
    # STATISTICS & AGGREGATION
    # =========================================================================

    def calculate(self, samples: Sequence[float]) -> Description:
        """Descriptive statistics for probes."""
        return describe(samples)

    def aggregate(self, group: GroupFn, transform: TransformFn, zero_template: Any) -> Reducer:
        """Aggregation pipeline bound to a probe's functions."""
        return aggregate(group, transform, zero_template)

    def summarize(
        self,
        probe_name: str,
        envelopes: Sequence[ResultEnvelope],
    ) -> Tuple[List[AggregationBucket], Any]:
        """
        Aggregate a probe's envelopes and compute its latest value.

        Raises:
            KeyError: If no probe with that name is registered
        """
        probe = self.probe(probe_name)
        if probe is None:
            raise KeyError(probe_name)

        ordered = sorted(envelopes, key=lambda envelope: envelope.start)
        reducer = self.aggregate(probe.group, probe.transform, probe.zero_template)
        aggregated = reducer(ordered)
        return aggregated, probe.latest(aggregated, ordered)

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        """Get collector statistics."""
        uptime_seconds = None
        if self._started_at:
            uptime_seconds = (datetime.now(timezone.utc) - self._started_at).total_seconds()

        return {
            "running": self._running,
            "state": self._state.value,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "uptime_seconds": uptime_seconds,
            "registries": list(self.registries.keys()),
            "probes": [probe.name for probe in self.probes],
            "jobs": len(self.jobs),
            "feed_modules": len(self.feed),
            "feed_interval_ms": self.feed_interval_ms,
            "feed_refreshes": self._feed_refreshes,
            "feed_errors": self._feed_errors,
            "last_feed_at": self._last_feed_at.isoformat() if self._last_feed_at else None,
            "ticks": self._ticks,
            "envelopes": self._envelopes,
            "probe_errors": self._probe_errors,
            "cache_errors": self._cache_errors,
        }


__all__ = [
    "Collector",
    "CollectorOptions",
    "now_ms",
]
