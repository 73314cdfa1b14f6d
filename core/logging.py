# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Structured logging with context
# PURPOSE: Probe/registry-aware log records for every component
# CREATED: 02 OCT 2026
# ============================================================================
"""
Structured Logging

Every probe tick runs inside a log context naming the probe, the
registry and the tick number. Formatters attach that context to each
record, so one tick's lines can be pulled out of an interleaved stream:

    2026-10-17 09:30:00.120 INFO     probes.delta [delta@yarnpkg #42]: ...

JSON output (LOG_FORMAT=json) carries the same fields under "context".

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger(__name__)

    with log_context(probe="ping", registry="npmjs", tick=7):
        logger.info("Tick completed")
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

# Libraries that log one line per HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


class ComponentType(str, Enum):
    """Component a logger belongs to."""
    COLLECTOR = "collector"
    PROBE = "probe"
    SCHEDULER = "scheduler"
    API = "api"
    INFRASTRUCTURE = "infrastructure"


# ============================================================================
# CONTEXT
# ============================================================================

@dataclass(frozen=True)
class LogContext:
    """Fields describing the tick (or request) being logged."""
    probe: Optional[str] = None
    registry: Optional[str] = None
    tick: Optional[int] = None
    component: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only; extra entries are merged in at the top level."""
        result = {
            key: value
            for key, value in (
                ("probe", self.probe),
                ("registry", self.registry),
                ("tick", self.tick),
                ("component", self.component),
            )
            if value is not None
        }
        result.update(self.extra)
        return result

    def label(self) -> str:
        """Compact form for human output: probe@registry #tick."""
        parts = []
        if self.probe and self.registry:
            parts.append(f"{self.probe}@{self.registry}")
        elif self.probe or self.registry:
            parts.append(self.probe or self.registry)
        if self.tick is not None:
            parts.append(f"#{self.tick}")
        return " ".join(parts)


_EMPTY = LogContext()
_current_context: ContextVar[LogContext] = ContextVar("log_context", default=_EMPTY)


def get_current_context() -> LogContext:
    """Context of the running task (empty outside any log_context)."""
    return _current_context.get()


@contextmanager
def log_context(**fields):
    """
    Layer context fields over the current ones for the enclosed block.

    Each asyncio task sees its own stack, so concurrent ticks never
    leak fields into each other.

    Example:
        with log_context(probe="delta", registry="yarnpkg"):
            logger.info("Comparing feed")
    """
    parent = get_current_context()
    context = LogContext(
        probe=fields.pop("probe", parent.probe),
        registry=fields.pop("registry", parent.registry),
        tick=fields.pop("tick", parent.tick),
        component=fields.pop("component", parent.component),
        extra={**parent.extra, **fields.pop("extra", {}), **fields},
    )

    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)


# ============================================================================
# FORMATTERS
# ============================================================================

def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def __init__(self, include_source: bool = True):
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_current_context().to_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "extra", None)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            entry["source"] = f"{record.filename}:{record.lineno}"

        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line records with the tick label inline."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = _timestamp(record).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        label = get_current_context().label()
        where = f"{record.name} [{label}]" if label else record.name

        line = f"{timestamp} {record.levelname:<8} {where}: {record.getMessage()}"

        data = getattr(record, "extra", None)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ============================================================================
# LOGGERS
# ============================================================================

class ContextLogger(logging.LoggerAdapter):
    """Adapter copying the current log context into each record's `extra`."""

    def process(self, msg, kwargs):
        data = dict(kwargs.get("extra") or {})
        data.update(get_current_context().to_dict())
        if self.extra.get("component") and "component" not in data:
            data["component"] = self.extra["component"]
        kwargs["extra"] = {"extra": data}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """Context-aware logger, optionally tagged with a component."""
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component else None},
    )


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name or number
        json_output: JSON records instead of human-readable lines
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named lifecycle checkpoint (feed_loaded, probes_registered, ...).

    Args:
        name: Checkpoint name
        data: Optional checkpoint data
        logger: Logger to use; defaults to "checkpoint"
    """
    payload: Dict[str, Any] = {"checkpoint": name, **get_current_context().to_dict()}
    if data:
        payload["data"] = data

    (logger or logging.getLogger("checkpoint")).info(
        f"CHECKPOINT: {name}", extra={"extra": payload}
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
