"""Caching utilities for the Complaint Tracker API."""

from functools import wraps
from typing import Callable

from cachetools import TTLCache

# Admin statistics are a full table scan; a short TTL keeps them cheap
# without hiding fresh submissions for long.
STATISTICS_CACHE_TTL_SECONDS = 60
_statistics_cache: TTLCache = TTLCache(maxsize=1, ttl=STATISTICS_CACHE_TTL_SECONDS)

CACHE_CONTROL_PRIVATE = "private, no-store"
CACHE_CONTROL_PUBLIC_LONG = "public, max-age=3600"


def cached_statistics(func: Callable) -> Callable:
    """Cache decorator for the admin statistics aggregate."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        if "statistics" in _statistics_cache:
            return _statistics_cache["statistics"]
        result = func(*args, **kwargs)
        _statistics_cache["statistics"] = result
        return result

    return wrapper


def invalidate_statistics() -> None:
    """Drop the cached statistics after a write that changes them."""
    _statistics_cache.clear()


def clear_all_caches() -> None:
    """Clear all caches (useful for testing)."""
    _statistics_cache.clear()
