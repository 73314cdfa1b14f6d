# ============================================================================
# EVENT CHANNEL
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Per-collector publish/subscribe
# PURPOSE: Deliver lifecycle events to listeners without shared globals
# CREATED: 05 OCT 2026
# ============================================================================
"""
Event Channel

Each Collector owns one EventChannel, created at construction and
closed at shutdown. Listeners are plain callables or coroutine
functions; coroutine listeners are scheduled as tasks on the running
loop.

Events are fire-and-forget: a failing listener is logged and does not
affect other listeners or the emitter.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


def event_name(event: Any) -> str:
    """Enum members resolve to their value."""
    return event.value if isinstance(event, Enum) else str(event)


class EventChannel:
    """Publish/subscribe channel owned by a single collector."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    def on(self, event: str, listener: Listener) -> Listener:
        """
        Subscribe to an event.

        Returns:
            The listener, so on() can be used as a decorator target
        """
        if self._closed:
            raise RuntimeError("Event channel is closed")
        self._listeners[event_name(event)].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> bool:
        """Unsubscribe; returns True if the listener was registered."""
        listeners = self._listeners.get(event_name(event), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event_name(event), []))

    # =========================================================================
    # EMISSION
    # =========================================================================

    def emit(self, event: str, *args: Any) -> int:
        """
        Deliver an event to every listener.

        Returns:
            Number of listeners invoked (0 once closed)
        """
        if self._closed:
            logger.debug(f"Dropped event {event}: channel closed")
            return 0

        listeners = list(self._listeners.get(event_name(event), []))
        for listener in listeners:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self._track(asyncio.ensure_future(result))
            except Exception as e:
                logger.error(f"Listener for {event} failed: {e}")

        return len(listeners)

    def _track(self, task: asyncio.Future) -> None:
        self._pending.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async listener failed: {task.exception()}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Drop all listeners; later emits are no-ops."""
        self._closed = True
        self._listeners.clear()
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()


__all__ = ["EventChannel", "Listener"]
