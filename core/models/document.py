# ============================================================================
# MODULE DOCUMENT
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core model - Registry package document
# PURPOSE: The subset of a package document the delta probe compares
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: ModuleDocument, FeedEntry, ChangesResponse, parse_timestamp
# DEPENDENCIES: pydantic
# ============================================================================
"""
Module Document Models

A ModuleDocument is read both from the canonical change feed and from
each mirror. Only name, time, versions and dist-tags are compared;
other fields of the registry document are ignored.

Unpublished packages carry time.unpublished as an object with its own
"time" key; unpublished_ms handles both that and a plain timestamp.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


def parse_timestamp(value: Any) -> Optional[int]:
    """ISO-8601 string (or {"time": ...}) to epoch milliseconds."""
    if isinstance(value, dict):
        value = value.get("time")
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


class ModuleDocument(BaseModel):
    """Package document as served by a registry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    time: Dict[str, Any] = Field(default_factory=dict)
    versions: Dict[str, Any] = Field(default_factory=dict)
    dist_tags: Dict[str, Any] = Field(default_factory=dict, alias="dist-tags")

    @property
    def created_ms(self) -> Optional[int]:
        return parse_timestamp(self.time.get("created"))

    @property
    def modified_ms(self) -> Optional[int]:
        return parse_timestamp(self.time.get("modified"))

    @property
    def unpublished_ms(self) -> Optional[int]:
        return parse_timestamp(self.time.get("unpublished"))


class FeedEntry(BaseModel):
    """One row of the canonical registry's recent-changes log."""

    model_config = ConfigDict(extra="ignore")

    id: str
    doc: ModuleDocument


class ChangesResponse(BaseModel):
    """Body of the `_changes` endpoint; rows without a document are dropped."""

    model_config = ConfigDict(extra="ignore")

    results: List[Dict[str, Any]] = Field(default_factory=list)

    def entries(self) -> List[FeedEntry]:
        entries = []
        for row in self.results:
            if not row.get("id") or not isinstance(row.get("doc"), dict):
                continue
            try:
                entries.append(FeedEntry.model_validate(row))
            except ValidationError:
                continue
        return entries


__all__ = [
    "ModuleDocument",
    "FeedEntry",
    "ChangesResponse",
    "parse_timestamp",
]
