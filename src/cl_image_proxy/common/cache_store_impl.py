from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from os import PathLike
from pathlib import Path
from typing import Final
from typing_extensions import override
from uuid import uuid4

import aiofiles
import aiofiles.os

from .cache_store import CachedResponse, CacheStore


class InMemoryCacheStore(CacheStore):
    """Process-local LRU cache. Oldest entries are evicted past max_entries."""

    def __init__(self, max_entries: int = 512):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries: int = max_entries
        self._entries: OrderedDict[str, CachedResponse] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    @override
    async def match(self, key: str) -> CachedResponse | None:
        response = self._entries.get(key)
        if response is not None:
            self._entries.move_to_end(key)
        return response

    @override
    async def put(self, key: str, response: CachedResponse) -> None:
        self._entries[key] = response
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            _ = self._entries.popitem(last=False)


class LocalFileCacheStore(CacheStore):
    """
    Filesystem cache.

    Layout:
        base_dir/
            <sha256(key)>.body
            <sha256(key)>.json    status and headers
    """

    _BODY_SUFFIX: Final[str] = ".body"
    _META_SUFFIX: Final[str] = ".json"

    def __init__(self, base_dir: str | PathLike[str]):
        self._base_dir: Path = Path(base_dir).expanduser().resolve()
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _paths(self, key: str) -> tuple[Path, Path]:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return (
            self._base_dir / f"{digest}{self._BODY_SUFFIX}",
            self._base_dir / f"{digest}{self._META_SUFFIX}",
        )

    @override
    async def match(self, key: str) -> CachedResponse | None:
        body_path, meta_path = self._paths(key)
        if not (meta_path.is_file() and body_path.is_file()):
            return None

        async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
            meta = json.loads(await f.read())
        if meta.get("key") != key:
            return None

        async with aiofiles.open(body_path, "rb") as f:
            body = await f.read()

        return CachedResponse(status=meta["status"], headers=meta["headers"], body=body)

    @override
    async def put(self, key: str, response: CachedResponse) -> None:
        body_path, meta_path = self._paths(key)
        meta = {"key": key, "status": response.status, "headers": response.headers}

        # Body first, metadata last: match() only sees complete entries
        await _write_atomic(body_path, response.body)
        await _write_atomic(meta_path, json.dumps(meta).encode("utf-8"))


async def _write_atomic(path: Path, data: bytes) -> None:
    """Write to a temp file unique to this writer, then rename over path."""
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    try:
        async with aiofiles.open(tmp_path, "wb") as f:
            _ = await f.write(data)
        await aiofiles.os.replace(tmp_path, path)
    finally:
        if await aiofiles.os.path.exists(tmp_path):
            await aiofiles.os.remove(tmp_path)
