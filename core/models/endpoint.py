# ============================================================================
# ENDPOINT MODEL
# ============================================================================
# EPOCH: 1 - REGISTRY HEALTH
# STATUS: Core model - Registry / mirror location
# PURPOSE: Immutable network location descriptor shared by all probes
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: Endpoint
# DEPENDENCIES: pydantic
# ============================================================================
"""
Endpoint Model

An Endpoint is loaded once at startup and shared by every probe that
targets it. It is frozen: per-request path composition goes through
with_path(), which returns a new value.
"""

from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field


class Endpoint(BaseModel):
    """Network location of a registry or mirror."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., max_length=64, description="Registry key, e.g. 'npmjs'")
    protocol: str = Field(default="https", description="URL scheme without ':'")
    host: str = Field(..., description="Host, with port when non-default")
    pathname: str = Field(default="/")
    href: str = Field(..., description="Full URL")
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds (ping)",
    )

    @classmethod
    def from_url(cls, name: str, url: str, timeout: Optional[float] = None) -> "Endpoint":
        """Build an endpoint from a URL string."""
        parts = urlsplit(url)
        pathname = parts.path or "/"
        return cls(
            name=name,
            protocol=parts.scheme or "https",
            host=parts.netloc,
            pathname=pathname,
            href=urlunsplit((parts.scheme, parts.netloc, pathname, parts.query, "")),
            timeout=timeout,
        )

    def with_path(self, pathname: str) -> "Endpoint":
        """Return a copy pointing at `pathname`; self is left untouched."""
        if not pathname.startswith("/"):
            pathname = "/" + pathname
        href = urlunsplit((self.protocol, self.host, pathname, "", ""))
        return self.model_copy(update={"pathname": pathname, "href": href})

    def document(self, module: str) -> "Endpoint":
        """Endpoint of a module document below this registry's base path."""
        base = self.pathname.rstrip("/")
        return self.with_path(f"{base}/{quote(module, safe='@')}")


__all__ = ["Endpoint"]
