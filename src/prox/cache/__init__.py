"""Thread-safe caches used by the API client runtime."""

from .entry import CacheEntry
from .errors import CacheError, CacheRefreshError
from .resource_cache import DEFAULT_RESOURCES_TTL, ResourceCache
from .rwlock import ReadWriteLock

__all__ = [
    "CacheEntry",
    "CacheError",
    "CacheRefreshError",
    "DEFAULT_RESOURCES_TTL",
    "ReadWriteLock",
    "ResourceCache",
]
