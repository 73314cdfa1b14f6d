# ============================================================================
# CHANGE FEED CLIENT
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core - Canonical registry recent-changes reader
# PURPOSE: Fetch the reference document set for the delta probe
# CREATED: 06 OCT 2026
# ============================================================================
"""
Change Feed Client

Reads the canonical registry's `_changes` endpoint with documents
included. The response is {"results": [{"id": ..., "doc": {...}}, ...]};
rows without a usable document (deletions, malformed docs) are dropped.

Any transport, status or parse problem raises FeedError. The collector
turns that into an `error` event and keeps its previous feed.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from core.errors import FeedError
from core.models import ChangesResponse, FeedEntry

logger = logging.getLogger(__name__)


class ChangeFeedClient:
    """HTTP client for the canonical registry change feed."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            url: Full `_changes` URL including query parameters
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch(self) -> List[FeedEntry]:
        """
        Fetch the latest changes.

        Raises:
            FeedError: On transport error, non-200 status or bad body
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise FeedError(f"Change feed unreachable: {e}") from e

        if response.status_code != 200:
            raise FeedError(
                f"Change feed returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            changes = ChangesResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise FeedError(f"Malformed change feed: {e.error_count()} errors") from e

        entries = changes.entries()
        logger.debug(f"Fetched {len(entries)} feed entries from {self.url}")
        return entries


__all__ = ["ChangeFeedClient"]
