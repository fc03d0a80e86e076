"""Common module - protocols, schemas, configuration and errors."""

from .cache_store import CachedResponse, CacheStore
from .config import Settings, get_settings
from .object_store import ObjectStore, StoredObject

__all__ = [
    "CacheStore",
    "CachedResponse",
    "ObjectStore",
    "Settings",
    "StoredObject",
    "get_settings",
]
