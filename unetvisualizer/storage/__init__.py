"""Storage module - Result caching."""

from .cache_manager import CacheConfig, CacheEntry, ResultCache

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "ResultCache",
]
