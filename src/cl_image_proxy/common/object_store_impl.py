from __future__ import annotations

import hashlib
from io import BytesIO
from os import PathLike
from pathlib import Path
from typing_extensions import override

import aiofiles
import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from .object_store import ObjectStore, StoredObject

_FALLBACK_CONTENT_TYPE = "application/octet-stream"

# Upstream headers kept as object metadata by the HTTP origin store.
_ORIGIN_METADATA_HEADERS = (
    "content-type",
    "content-language",
    "content-disposition",
    "content-encoding",
    "last-modified",
)


def sniff_content_type(data: bytes) -> str:
    """Detect the MIME type of image bytes from their header."""
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        return _FALLBACK_CONTENT_TYPE
    return Image.MIME.get(fmt or "", _FALLBACK_CONTENT_TYPE)


class LocalObjectStore(ObjectStore):
    """
    Local filesystem implementation of ObjectStore.

    Layout:
        base_dir/
            <object_key>
    """

    def __init__(self, base_dir: str | PathLike[str]):
        self._base_dir: Path = Path(base_dir).expanduser().resolve()
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _safe_path(self, key: str) -> Path | None:
        """
        Resolve an object key below the store root.
        Returns None for keys escaping the root (path traversal).
        """
        resolved = (self._base_dir / key).resolve()
        if self._base_dir not in resolved.parents:
            return None
        return resolved

    @override
    async def get(self, key: str) -> StoredObject | None:
        path = self._safe_path(key)
        if path is None:
            logger.warning(f"Rejected object key outside the store: {key!r}")
            return None
        if not path.is_file():
            return None

        async with aiofiles.open(path, "rb") as f:
            body = await f.read()

        return StoredObject(
            key=key,
            body=body,
            http_metadata={"content-type": sniff_content_type(body)},
            etag=hashlib.md5(body).hexdigest(),
        )


class HttpObjectStore(ObjectStore):
    """ObjectStore pulling objects from an HTTP origin (``base_url/<key>``)."""

    def __init__(self, base_url: str, client: httpx.AsyncClient):
        self._base_url: str = base_url.rstrip("/")
        self._client: httpx.AsyncClient = client

    @override
    async def get(self, key: str) -> StoredObject | None:
        response = await self._client.get(f"{self._base_url}/{key.lstrip('/')}")
        if response.status_code == 404:
            return None
        _ = response.raise_for_status()

        body = response.content
        metadata = {
            name: response.headers[name]
            for name in _ORIGIN_METADATA_HEADERS
            if name in response.headers
        }
        # httpx has already decoded the body
        _ = metadata.pop("content-encoding", None)
        if "content-type" not in metadata:
            metadata["content-type"] = sniff_content_type(body)

        etag = response.headers.get("etag", "").strip('"') or hashlib.md5(body).hexdigest()
        return StoredObject(key=key, body=body, http_metadata=metadata, etag=etag)
