# ============================================================================
# COLLECTOR TESTS
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Tests - Collector registration, execution and persistence
# PURPOSE: Verify envelopes, events, cache writes, feed and failure isolation
# CREATED: 14 OCT 2026
# ============================================================================
"""
Collector Tests

Covers:
1. Probe registration and validation
2. Startup state machine (feed before probes)
3. Envelope construction (duration == end - start)
4. Listener copies are independent of the cached envelope
5. Probe, cache and feed failures are reported, never propagated
6. Failure isolation between probes
7. summarize() over cached history

Run with:
    pytest tests/test_collector.py -v
"""

import asyncio
import pytest
from typing import Any, List
from unittest.mock import AsyncMock, MagicMock

from collector import CalendarScheduler, Collector, CollectorOptions, MemoryCache
from core.config import build_registries
from core.contracts import CollectorEvent, CollectorState
from core.errors import FeedError, ProbeError
from core.models import FeedEntry, ModuleDocument
from core.schedule import ScheduleSpec
from probes import Probe, ProbeRegistry, get_registry


# ============================================================================
# HELPERS
# ============================================================================

REGISTRIES = build_registries({"npmjs": "https://registry.test/", "mirror": "https://mirror.test/"})


class StubProbe(Probe):
    """Probe returning a fixed payload or raising a fixed error."""

    name = "stub"
    schedule = ScheduleSpec(second=[0])
    zero_template = {"count": 0}

    def __init__(self, collector, payload=None, error=None, name=None):
        super().__init__(collector)
        self.payload = payload if payload is not None else {"value": 1}
        self.error = error
        if name:
            self.name = name
        self.calls = 0

    async def execute(self, endpoint):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.payload)

    def group(self, timestamp):
        return timestamp // 1000

    def transform(self, bucket, envelope, index, history):
        bucket["count"] += 1
        return bucket

    def latest(self, aggregated, raw):
        return aggregated[-1].values["count"] if aggregated else None


class Clock:
    """Epoch-ms clock advancing by `step` on every read."""

    def __init__(self, start=1_000_000, step=25):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


def _make_collector(cache=None, probes=None, feed_client=None, clock=None):
    return Collector(
        CollectorOptions(registries=REGISTRIES, cache=cache, probes=probes),
        scheduler=CalendarScheduler(autostart=False),
        feed_client=feed_client,
        clock=clock or Clock(),
    )


def _feed_client(*results):
    """Feed client mock; each result is a list of entries or an exception."""
    client = MagicMock()
    client.fetch = AsyncMock(side_effect=list(results))
    return client


def _entry(name="a"):
    return FeedEntry(id=name, doc=ModuleDocument(name=name))


def _record(collector, event) -> List[Any]:
    received = []
    collector.on(event, lambda *args: received.append(args))
    return received


async def _drain():
    for _ in range(3):
        await asyncio.sleep(0)


# ============================================================================
# REGISTRATION
# ============================================================================

class TestRegistration:
    """Tests for register() and is_valid()."""

    def test_empty_injected_scheduler_kept(self):
        scheduler = CalendarScheduler(autostart=False)
        feed_client = _feed_client()
        assert len(scheduler) == 0

        collector = Collector(
            CollectorOptions(registries=REGISTRIES),
            scheduler=scheduler,
            feed_client=feed_client,
        )

        assert collector.scheduler is scheduler
        assert collector.feed_client is feed_client

        # Outside an event loop: only a non-autostart scheduler can take jobs
        collector.register(StubProbe(collector))
        assert len(scheduler) == 2

    def test_one_job_per_target(self):
        collector = _make_collector()
        scheduled = _record(collector, CollectorEvent.SCHEDULED)

        jobs = collector.register(StubProbe(collector))

        assert [job.name for job in jobs] == ["stub::npmjs", "stub::mirror"]
        assert len(collector.scheduler) == 2
        assert [args[0] for args in scheduled] == ["stub", "stub"]
        assert all(isinstance(args[1], int) for args in scheduled)

    def test_invalid_probe_ignored(self):
        collector = _make_collector()
        invalid = MagicMock(spec=["name", "schedule"])
        invalid.name = "broken"
        invalid.schedule = ScheduleSpec()

        assert collector.register(invalid) == []
        assert collector.probes == []
        assert len(collector.scheduler) == 0

    def test_unknown_target_skipped(self):
        collector = _make_collector()
        class PinnedProbe(StubProbe):
            targets = ["npmjs", "nowhere"]

        jobs = collector.register(PinnedProbe(collector))

        assert [job.name for job in jobs] == ["stub::npmjs"]

    def test_probe_lookup(self):
        collector = _make_collector()
        probe = StubProbe(collector)
        collector.register(probe)

        assert collector.probe("stub") is probe
        assert collector.probe("missing") is None


# ============================================================================
# STATE MACHINE
# ============================================================================

class TestStartup:
    """Tests for refresh_feed() and initialize()."""

    def test_initialize_requires_feed(self):
        collector = _make_collector(probes=[StubProbe])
        with pytest.raises(RuntimeError):
            collector.initialize()
        assert collector.state is CollectorState.UNINITIALIZED

    def test_first_refresh_registers_probes(self):
        collector = _make_collector(probes=[StubProbe], feed_client=_feed_client([_entry()]))

        assert asyncio.run(collector.refresh_feed()) is True
        assert collector.state is CollectorState.PROBES_REGISTERED
        assert [probe.name for probe in collector.probes] == ["stub"]
        assert len(collector.jobs) == 2

    def test_failed_first_refresh_registers_nothing(self):
        collector = _make_collector(probes=[StubProbe], feed_client=_feed_client(FeedError("down")))
        errors = _record(collector, CollectorEvent.ERROR)

        assert asyncio.run(collector.refresh_feed()) is False
        assert collector.state is CollectorState.UNINITIALIZED
        assert collector.probes == []
        assert len(errors) == 1

    def test_failed_refresh_keeps_previous_feed(self):
        entries = [_entry("a"), _entry("b")]
        collector = _make_collector(probes=[], feed_client=_feed_client(entries, FeedError("HTTP 502")))
        errors = _record(collector, CollectorEvent.ERROR)

        async def scenario():
            await collector.refresh_feed()
            await collector.refresh_feed()

        asyncio.run(scenario())

        assert collector.feed == entries
        assert isinstance(errors[0][0], FeedError)
        assert collector.stats["feed_errors"] == 1

    def test_second_refresh_does_not_reregister(self):
        collector = _make_collector(probes=[StubProbe], feed_client=_feed_client([_entry("a")], [_entry("b")]))

        async def scenario():
            await collector.refresh_feed()
            await collector.refresh_feed()

        asyncio.run(scenario())

        assert len(collector.probes) == 1
        assert [entry.id for entry in collector.feed] == ["b"]

    def test_default_probe_set(self):
        collector = _make_collector(probes=None, feed_client=_feed_client([_entry()]))
        asyncio.run(collector.refresh_feed())

        assert [probe.name for probe in collector.probes] == ["ping", "delta", "publish"]
        assert sorted(job.name for job in collector.jobs) == [
            "delta::mirror", "delta::npmjs", "ping::mirror", "ping::npmjs", "publish::npmjs",
        ]

    def test_broken_factory_skipped(self):
        def broken(collector):
            raise RuntimeError("cannot build")

        collector = _make_collector(probes=[broken, StubProbe], feed_client=_feed_client([_entry()]))
        asyncio.run(collector.refresh_feed())

        assert [probe.name for probe in collector.probes] == ["stub"]

    def test_start_and_stop(self):
        collector = _make_collector(probes=[StubProbe], feed_client=_feed_client([_entry()]))

        async def scenario():
            await collector.start()
            assert collector.is_running
            jobs = list(collector.jobs)
            await collector.stop()
            return jobs

        jobs = asyncio.run(scenario())

        assert collector.state is CollectorState.STOPPED
        assert not collector.is_running
        assert collector.events.closed
        assert all(job.cancelled for job in jobs)


# ============================================================================
# EXECUTION
# ============================================================================

class TestRun:
    """Tests for run() and wrap()."""

    def test_envelope(self):
        collector = _make_collector()
        probe = StubProbe(collector, payload={"value": 7})

        envelope = asyncio.run(collector.run(probe, "mirror"))

        assert envelope.probe == "stub"
        assert envelope.registry == "mirror"
        assert envelope.payload == {"value": 7}
        assert envelope.duration == envelope.end - envelope.start
        assert envelope.duration >= 0

    def test_sequential_ticks_non_decreasing(self):
        collector = _make_collector()
        probe = StubProbe(collector)

        async def scenario():
            return [await collector.run(probe, "npmjs") for _ in range(3)]

        envelopes = asyncio.run(scenario())

        for previous, current in zip(envelopes, envelopes[1:]):
            assert current.start >= previous.start
            assert current.end >= previous.end
        assert all(e.duration == e.end - e.start for e in envelopes)

    def test_end_never_precedes_start(self):
        readings = iter([5000, 4000])
        collector = _make_collector(clock=lambda: next(readings))
        ran = collector.wrap(StubProbe(collector), "npmjs")

        envelope = ran(None, {"value": 1})

        assert envelope.start == 5000
        assert envelope.end == 5000
        assert envelope.duration == 0

    def test_ran_events(self):
        collector = _make_collector()
        ran = _record(collector, CollectorEvent.RAN)
        ran_stub = _record(collector, CollectorEvent.ran_for("stub"))

        asyncio.run(collector.run(StubProbe(collector), "npmjs"))

        assert len(ran) == 1
        assert ran[0][0] is None
        assert ran[0][1].probe == "stub"
        assert len(ran_stub) == 1

    def test_listener_copy_independent_of_cache(self):
        cache = MemoryCache()
        collector = _make_collector(cache=cache)
        received = _record(collector, CollectorEvent.RAN)

        async def scenario():
            envelope = await collector.run(StubProbe(collector, payload={"value": 1}), "npmjs")
            await _drain()
            return envelope

        envelope = asyncio.run(scenario())
        received[0][1].payload["value"] = 999

        cached = cache.get(envelope.cache_key)
        assert cached is envelope
        assert cached.payload == {"value": 1}
        assert received[0][1] is not cached

    def test_probe_failure_events(self):
        collector = _make_collector(cache=MemoryCache())
        ran = _record(collector, CollectorEvent.RAN)
        probe_errors = _record(collector, CollectorEvent.PROBE_ERROR)
        stub_errors = _record(collector, CollectorEvent.error_for("stub"))
        failure = ProbeError("boom", probe="stub")

        result = asyncio.run(collector.run(StubProbe(collector, error=failure), "npmjs"))

        assert result is None
        assert ran == [(failure, None)]
        assert probe_errors == [(failure,)]
        assert stub_errors == [(failure,)]
        assert len(collector.options.cache) == 0

    def test_listener_failure_isolated(self):
        collector = _make_collector()
        collector.on(CollectorEvent.RAN, MagicMock(side_effect=RuntimeError("listener bug")))
        received = _record(collector, CollectorEvent.RAN)

        envelope = asyncio.run(collector.run(StubProbe(collector), "npmjs"))

        assert envelope is not None
        assert len(received) == 1

    def test_failing_probe_does_not_affect_others(self):
        cache = MemoryCache()
        collector = _make_collector(cache=cache)
        good = StubProbe(collector, name="good")
        bad = StubProbe(collector, name="bad", error=RuntimeError("always"))
        collector.register(good)
        collector.register(bad)

        async def scenario():
            for _ in range(3):
                for job in collector.jobs:
                    await job.trigger()
            await _drain()

        asyncio.run(scenario())

        assert good.calls == 6
        assert bad.calls == 6
        assert len(cache.history("npmjs", "good")) == 3
        assert len(cache.history("mirror", "good")) == 3
        assert cache.history("npmjs", "bad") == []
        assert collector.stats["probe_errors"] == 6


# ============================================================================
# PERSISTENCE
# ============================================================================

class TestPersistence:
    """Tests for cache writes."""

    def test_sync_cache(self):
        cache = MagicMock()
        cache.set.return_value = None
        collector = _make_collector(cache=cache)

        envelope = asyncio.run(collector.run(StubProbe(collector), "npmjs"))

        cache.set.assert_called_once_with(envelope.cache_key, envelope)

    def test_sync_cache_failure_emits_error(self):
        cache = MagicMock()
        cache.set.side_effect = RuntimeError("disk full")
        collector = _make_collector(cache=cache)
        errors = _record(collector, CollectorEvent.ERROR)
        ran = _record(collector, CollectorEvent.RAN)

        asyncio.run(collector.run(StubProbe(collector), "npmjs"))

        assert len(ran) == 1
        assert str(errors[0][0]) == "disk full"

    def test_async_cache_failure_emits_error(self):
        cache = MagicMock()
        cache.set = AsyncMock(side_effect=RuntimeError("unreachable"))
        collector = _make_collector(cache=cache)
        errors = _record(collector, CollectorEvent.ERROR)

        async def scenario():
            await collector.run(StubProbe(collector), "npmjs")
            await _drain()

        asyncio.run(scenario())

        assert [str(args[0]) for args in errors] == ["unreachable"]
        assert collector.stats["cache_errors"] == 1

    def test_no_cache(self):
        collector = _make_collector(cache=None)
        assert asyncio.run(collector.run(StubProbe(collector), "npmjs")) is not None


# ============================================================================
# SUMMARY
# ============================================================================

class TestSummarize:
    """Tests for summarize() and calculate()."""

    def test_summarize_sorts_history(self):
        cache = MemoryCache()
        collector = _make_collector(cache=cache, clock=Clock(start=1000, step=600))
        probe = StubProbe(collector)
        collector.register(probe)

        async def scenario():
            for _ in range(3):
                await collector.run(probe, "npmjs")
            await _drain()

        asyncio.run(scenario())
        history = list(reversed(cache.history("npmjs", "stub")))

        aggregated, latest = collector.summarize("stub", history)

        assert [bucket.key for bucket in aggregated] == [1, 2, 3]
        assert latest == 1

    def test_summarize_unknown_probe(self):
        collector = _make_collector()
        with pytest.raises(KeyError):
            collector.summarize("missing", [])

    def test_calculate(self):
        collector = _make_collector()
        assert collector.calculate([1, 2, 3]).mean == 2


# ============================================================================
# PROBE REGISTRY
# ============================================================================

class TestProbeRegistry:
    """Tests for ProbeRegistry."""

    def test_builtin_probes_registered(self):
        assert get_registry().names()[:3] == ["ping", "delta", "publish"]
        assert "ping" in get_registry()

    def test_register_and_unregister(self):
        registry = ProbeRegistry()
        registry.register(StubProbe)

        assert registry.get("stub") is StubProbe
        assert len(registry) == 1
        assert registry.unregister("stub") is True
        assert registry.unregister("stub") is False

    def test_unnamed_probe_rejected(self):
        class Unnamed(StubProbe):
            name = Probe.name

        with pytest.raises(ValueError):
            ProbeRegistry().register(Unnamed)
