"""ImageService - per-request orchestration of fetch, transform, encode and cache."""

from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from typing import ClassVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ..common.cache_store import CachedResponse, CacheStore
from ..common.config import Settings
from ..common.errors import InvalidParameterError, TransformFault
from ..common.object_store import ObjectStore, StoredObject
from ..imaging.capability import ImageCapability
from ..imaging.encoder import encode
from ..imaging.runtime import initialize_runtime
from ..pipeline.executor import PipelineExecutor, validate_pipeline
from ..pipeline.resolver import resolve_pipeline
from ..pipeline.stages import PipelineStage, format_pipeline
from .params import TransformRequest, parse_size, parse_transform_request

NOT_FOUND_MESSAGE = "Object Not Found"


class ServeResult(BaseModel):
    """Outcome of one image request."""

    status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    cacheable: bool = False
    from_cache: bool = False

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    def to_cached(self) -> CachedResponse:
        return CachedResponse(status=self.status, headers=self.headers, body=self.body)

    @classmethod
    def from_cached(cls, cached: CachedResponse) -> "ServeResult":
        return cls(status=cached.status, headers=cached.headers, body=cached.body, from_cache=True)


def _text(status: int, message: str) -> ServeResult:
    return ServeResult(
        status=status,
        headers={"content-type": "text/plain;charset=UTF-8"},
        body=message.encode("utf-8"),
    )


def _original(obj: StoredObject, status: int = 200) -> ServeResult:
    return ServeResult(status=status, headers=obj.response_headers(), body=obj.body)


class ImageService:
    """Serves original or transformed objects.

    Flow: cache match -> object fetch -> validate -> decode -> resolve ->
    execute -> encode. Faults are caught here, once, and mapped to a status.
    """

    def __init__(
        self,
        settings: Settings,
        object_store: ObjectStore,
        cache_store: CacheStore,
        capability: ImageCapability,
        executor: PipelineExecutor,
        extra_stages: Sequence[PipelineStage] = (),
    ):
        initialize_runtime()
        validate_pipeline(extra_stages)

        self.settings: Settings = settings
        self.object_store: ObjectStore = object_store
        self.cache_store: CacheStore = cache_store
        self.capability: ImageCapability = capability
        self.executor: PipelineExecutor = executor
        self.extra_stages: tuple[PipelineStage, ...] = tuple(extra_stages)

    async def serve(
        self,
        url: str,
        key: str,
        query: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> ServeResult:
        cached = await self.cache_store.match(url)
        if cached is not None:
            logger.debug(f"Cache hit: {url}")
            return ServeResult.from_cached(cached)

        obj = await self.object_store.get(key)
        if obj is None:
            logger.info(f"Object not found: {key!r}")
            return _text(404, NOT_FOUND_MESSAGE)

        # format and quality only matter once a resize is requested
        try:
            width, height = parse_size(query)
            if width == 0 and height == 0:
                return _original(obj)
            request = parse_transform_request(query, self.settings)
        except InvalidParameterError as exc:
            return _text(400, exc.message)

        try:
            return await self._transform(obj, request, headers)
        except TransformFault as exc:
            logger.opt(exception=exc).warning(f"Transform failed for {url}: {exc}")
            return _original(obj, status=415)
        except Exception:
            logger.exception(f"Unexpected failure serving {url}")
            return _original(obj, status=500)

    async def _transform(
        self,
        obj: StoredObject,
        request: TransformRequest,
        headers: Mapping[str, str] | None,
    ) -> ServeResult:
        with ExitStack() as stack:
            primary = stack.enter_context(self.capability.decode(obj.body))

            pipeline = resolve_pipeline(request.width, request.height, primary.width, primary.height)
            if not pipeline:
                logger.debug(
                    f"Pass-through for {obj.key!r}: {request.width}x{request.height} "
                    + f"exceeds natural {primary.width}x{primary.height}"
                )
                return _original(obj)

            pipeline = [*pipeline, *self.extra_stages]
            logger.debug(f"Pipeline for {obj.key!r}: {format_pipeline(pipeline)}")

            result = await self.executor.execute(primary, pipeline, headers=headers)
            if result is not primary:
                _ = stack.enter_context(result)

            encoded = await encode(result, request.format, request.quality)

        return ServeResult(
            status=200,
            headers={
                "content-type": encoded.content_type,
                "cache-control": self.settings.cache_control,
            },
            body=encoded.body,
            cacheable=True,
        )

    async def remember(self, url: str, result: ServeResult) -> None:
        """Store a cacheable result. Run after the response has been sent."""
        if not result.cacheable:
            return
        try:
            await self.cache_store.put(url, result.to_cached())
        except Exception:
            logger.exception(f"Cache write failed for {url}")
