"""cl_image_proxy - On-demand image resize / crop / composite proxy."""

from .app import create_app
from .common.cache_store import CachedResponse, CacheStore
from .common.config import Settings, get_settings
from .common.object_store import ObjectStore, StoredObject
from .imaging.capability import ImageCapability, PillowCapability
from .imaging.encoder import OutputFormat
from .imaging.handle import ImageHandle
from .pipeline.executor import PipelineExecutor
from .pipeline.resolver import resolve_pipeline
from .pipeline.secondary import SecondaryFetchGate
from .pipeline.stages import Blend, Crop, PipelineStage, Resize, Watermark, parse_pipeline
from .server.service import ImageService

__version__ = "0.1.0"

__all__ = [
    "Blend",
    "CacheStore",
    "CachedResponse",
    "Crop",
    "ImageCapability",
    "ImageHandle",
    "ImageService",
    "ObjectStore",
    "OutputFormat",
    "PillowCapability",
    "PipelineExecutor",
    "PipelineStage",
    "Resize",
    "SecondaryFetchGate",
    "Settings",
    "StoredObject",
    "Watermark",
    "__version__",
    "create_app",
    "get_settings",
    "parse_pipeline",
    "resolve_pipeline",
]
