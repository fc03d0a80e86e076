"""Application factory.

Run with::

    uvicorn --factory cl_image_proxy.app:create_app
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from loguru import logger

from .common.cache_store import CacheStore
from .common.cache_store_impl import InMemoryCacheStore, LocalFileCacheStore
from .common.config import Settings, get_settings
from .common.object_store import ObjectStore
from .common.object_store_impl import HttpObjectStore, LocalObjectStore
from .imaging.capability import ImageCapability, PillowCapability
from .imaging.runtime import initialize_runtime
from .pipeline.executor import PipelineExecutor
from .pipeline.secondary import SecondaryFetchGate
from .pipeline.stages import parse_pipeline
from .server.routes import create_router
from .server.service import ImageService


def build_object_store(settings: Settings, client: httpx.AsyncClient) -> ObjectStore:
    if settings.object_store_url:
        return HttpObjectStore(settings.object_store_url, client)
    return LocalObjectStore(settings.object_store_dir)


def build_cache_store(settings: Settings) -> CacheStore:
    if settings.cache_dir is not None:
        return LocalFileCacheStore(settings.cache_dir)
    return InMemoryCacheStore(max_entries=settings.cache_max_entries)


def create_app(
    settings: Settings | None = None,
    *,
    object_store: ObjectStore | None = None,
    cache_store: CacheStore | None = None,
    capability: ImageCapability | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the FastAPI app. Collaborators not given are built from settings.

    Raises:
        PipelineError: If EXTRA_PIPELINE is not a valid pipeline.
        RuntimeError: If Pillow lacks WebP support.
    """
    settings = settings or get_settings()
    initialize_runtime()

    extra_stages = parse_pipeline(settings.extra_pipeline)
    owns_client = http_client is None
    client = http_client if http_client is not None else httpx.AsyncClient()
    capability = capability or PillowCapability()

    gate = SecondaryFetchGate(
        client,
        capability,
        allowed_hosts=settings.allowed_hosts,
        timeout=settings.secondary_fetch_timeout,
    )
    service = ImageService(
        settings=settings,
        object_store=object_store or build_object_store(settings, client),
        cache_store=cache_store or build_cache_store(settings),
        capability=capability,
        executor=PipelineExecutor(capability, gate),
        extra_stages=extra_stages,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            f"Image proxy ready (white list: {settings.allowed_hosts or 'allow all'}, "
            + f"extra stages: {len(extra_stages)})"
        )
        yield
        if owns_client:
            await client.aclose()

    app = FastAPI(title="cl_image_proxy", lifespan=lifespan)
    app.state.image_service = service
    app.include_router(create_router(service))
    return app
