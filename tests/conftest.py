"""Test configuration and fixtures for cl_image_proxy.

This module provides:
- Image factories (synthetic images generated with PIL)
- Store fixtures (local object store, in-memory cache)
- A mocked HTTP transport serving secondary images
- API client fixtures built on the app factory
"""

from collections.abc import Callable, Iterator
from io import BytesIO
from pathlib import Path
from typing_extensions import override

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from cl_image_proxy.common.cache_store_impl import InMemoryCacheStore
from cl_image_proxy.common.config import Settings
from cl_image_proxy.common.object_store import StoredObject
from cl_image_proxy.common.object_store_impl import LocalObjectStore

RED = (200, 0, 0)
BLUE = (0, 0, 255)

LOGO_URL = "https://cdn.example.com/logo.png"
MISSING_LOGO_URL = "https://cdn.example.com/missing.png"
BROKEN_LOGO_URL = "https://cdn.example.com/broken.png"
OFFLINE_LOGO_URL = "https://offline.example.com/logo.png"


# ============================================================================
# Image Factories
# ============================================================================


def make_image_bytes(
    size: tuple[int, int],
    color: tuple[int, ...] = RED,
    fmt: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    """Encode a solid-color image of the given size."""
    buffer = BytesIO()
    Image.new(mode, size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


def open_bytes(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


@pytest.fixture
def landscape_bytes() -> bytes:
    """1000x500 solid red PNG (natural ratio 2.0)."""
    return make_image_bytes((1000, 500))


@pytest.fixture
def logo_bytes() -> bytes:
    """20x20 opaque blue PNG used as companion image."""
    return make_image_bytes((20, 20), BLUE)


# ============================================================================
# Store Fixtures
# ============================================================================


class CountingObjectStore(LocalObjectStore):
    """LocalObjectStore that counts get() calls."""

    def __init__(self, base_dir: Path):
        super().__init__(base_dir)
        self.calls: list[str] = []

    @override
    async def get(self, key: str) -> StoredObject | None:
        self.calls.append(key)
        return await super().get(key)


@pytest.fixture
def object_store(tmp_path: Path, landscape_bytes: bytes) -> CountingObjectStore:
    """Object store holding photos/landscape.png and a corrupt photos/broken.png."""
    base_dir = tmp_path / "objects"
    (base_dir / "photos").mkdir(parents=True)
    (base_dir / "photos" / "landscape.png").write_bytes(landscape_bytes)
    (base_dir / "photos" / "broken.png").write_bytes(b"\x89PNG\r\n\x1a\nnot really a png")
    return CountingObjectStore(base_dir)


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore(max_entries=16)


# ============================================================================
# Secondary Image HTTP Mock
# ============================================================================


@pytest.fixture
def secondary_requests() -> list[httpx.Request]:
    """Requests seen by the mocked secondary image origin."""
    return []


@pytest.fixture
def http_client(logo_bytes: bytes, secondary_requests: list[httpx.Request]) -> httpx.AsyncClient:
    """AsyncClient whose transport serves the companion images."""

    def handler(request: httpx.Request) -> httpx.Response:
        secondary_requests.append(request)
        url = str(request.url)
        if url == LOGO_URL:
            return httpx.Response(200, content=logo_bytes, headers={"content-type": "image/png"})
        if url == BROKEN_LOGO_URL:
            return httpx.Response(200, content=b"garbage", headers={"content-type": "image/png"})
        if url == OFFLINE_LOGO_URL:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(404, content=b"not found")

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================================
# API Client Fixtures
# ============================================================================


def make_settings(**overrides: object) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, **overrides)  # pyright: ignore[reportCallIssue]


@pytest.fixture
def app_factory(
    object_store: CountingObjectStore,
    cache_store: InMemoryCacheStore,
    http_client: httpx.AsyncClient,
) -> Callable[..., TestClient]:
    """Build a TestClient over create_app() with test collaborators."""
    from cl_image_proxy.app import create_app

    def factory(**overrides: object) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            object_store=object_store,
            cache_store=cache_store,
            http_client=http_client,
        )
        return TestClient(app)

    return factory


@pytest.fixture
def api_client(app_factory: Callable[..., TestClient]) -> Iterator[TestClient]:
    """TestClient with default settings."""
    with app_factory() as client:
        yield client
