"""
CacheStore Protocol - response cache keyed by the full request URL.
"""

from __future__ import annotations

from typing import ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class CachedResponse(BaseModel):
    """A complete HTTP response as stored in the cache."""

    status: int = Field(200, ge=100, le=599)
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for the cache gateway."""

    async def match(self, key: str) -> CachedResponse | None:
        """Return the cached response for key, or None on a miss."""
        ...

    async def put(self, key: str, response: CachedResponse) -> None:
        """Store a response under key, replacing any previous entry."""
        ...
