"""
ObjectStore Protocol - byte-level read access to stored source images.

Callers address objects only by key; implementations own where the bytes
live (local directory, HTTP origin, ...).
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class StoredObject(BaseModel):
    """A stored object and the HTTP metadata recorded with it."""

    key: str = Field(..., description="Object key within the store")
    body: bytes = Field(..., description="Raw object bytes")
    http_metadata: dict[str, str] = Field(
        default_factory=dict,
        description="Response headers to replay for the object (content-type, ...)",
    )
    etag: str = Field(..., description="Unquoted entity tag")

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def http_etag(self) -> str:
        """Entity tag in header form (quoted)."""
        return f'"{self.etag}"'

    def write_http_metadata(self, headers: MutableMapping[str, str]) -> None:
        """Copy the stored metadata headers into ``headers``."""
        for name, value in self.http_metadata.items():
            headers[name.lower()] = value

    def response_headers(self) -> dict[str, str]:
        """Headers for replaying this object unchanged: metadata plus etag."""
        headers: dict[str, str] = {}
        self.write_http_metadata(headers)
        headers["etag"] = self.http_etag
        return headers


# ---------------------------------------------------------------------------
# Store Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for the object storage gateway."""

    async def get(self, key: str) -> StoredObject | None:
        """
        Fetch an object by key.

        Returns:
            The stored object, or None when the store has no entry for key.
        """
        ...
