"""
Time-bounded LRU cache for Google Maps Platform responses.

Only the provider adapters (geocoding, place searches) read and write it;
the planning core is given complete inputs and never consults a cache.
"""
import logging
import hashlib
import json
from collections import OrderedDict
from typing import Any, Optional, Tuple
from datetime import datetime, timedelta

from src.utils.config import get_settings

logger = logging.getLogger(__name__)


def _generate_cache_key(operation: str, **params) -> str:
    """Generate a stable cache key from operation and parameters."""
    # Sort params for consistent hashing
    sorted_params = json.dumps(params, sort_keys=True, ensure_ascii=False, default=str)
    key_str = f"{operation}:{sorted_params}"
    return hashlib.md5(key_str.encode()).hexdigest()


class TTLCache:
    """Entries expire after their TTL; the least recently used entry is evicted when full."""

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 1024):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._store: "OrderedDict[str, Tuple[Any, datetime]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._store)

    def get(self, operation: str, **params) -> Optional[Any]:
        key = _generate_cache_key(operation, **params)
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expiry = entry
        if datetime.utcnow() >= expiry:
            del self._store[key]
            logger.debug(f"Cache expired for {operation}")
            return None
        self._store.move_to_end(key)
        logger.debug(f"Cache hit for {operation}")
        return value

    def set(self, operation: str, value: Any, ttl_seconds: Optional[int] = None, **params):
        key = _generate_cache_key(operation, **params)
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        self._store[key] = (value, datetime.utcnow() + timedelta(seconds=ttl))
        self._store.move_to_end(key)
        while len(self._store) > self.max_entries:
            evicted, _ = self._store.popitem(last=False)
            logger.debug(f"Evicted cache entry {evicted}")
        logger.debug(f"Cached {operation} for {ttl}s")

    def clear(self):
        self._store.clear()

    def cleanup_expired(self) -> int:
        now = datetime.utcnow()
        expired_keys = [k for k, (_, expiry) in self._store.items() if now >= expiry]
        for k in expired_keys:
            del self._store[k]
        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")
        return len(expired_keys)


_settings = get_settings()
_default_cache = TTLCache(
    ttl_seconds=_settings.CACHE_TTL_SECONDS,
    max_entries=_settings.CACHE_MAX_ENTRIES,
)


def get_cached(operation: str, **params) -> Optional[Any]:
    """Retrieve cached result if available and not expired."""
    try:
        return _default_cache.get(operation, **params)
    except Exception as e:
        logger.warning(f"Cache get error: {e}")
        return None


def set_cached(operation: str, value: Any, ttl_seconds: Optional[int] = None, **params):
    """Store result in cache with TTL."""
    try:
        _default_cache.set(operation, value, ttl_seconds=ttl_seconds, **params)
    except Exception as e:
        logger.warning(f"Cache set error: {e}")


def clear_cache():
    """Clear all cached entries (useful for testing)."""
    _default_cache.clear()
    logger.info("Cache cleared")


def cleanup_expired():
    """Remove expired entries from cache."""
    try:
        _default_cache.cleanup_expired()
    except Exception as e:
        logger.warning(f"Cache cleanup error: {e}")
