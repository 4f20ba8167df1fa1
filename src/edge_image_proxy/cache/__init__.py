"""
Response cache package.

Provides a factory function to create the configured cache backends.
"""

from .base import CachedResponse, ResponseCache
from .keys import origin_cache_key, response_cache_key
from .memory import MemoryResponseCache


def create_response_cache(
    cache_type: str = "memory",
    max_entries: int = 1024,
    name: str = "memory",
) -> ResponseCache:
    """
    Factory function to create a response cache.

    Args:
        cache_type: Type of cache ("memory")
        max_entries: Entry bound for bounded backends
        name: Label used in log messages

    Returns:
        Configured ResponseCache instance

    Raises:
        ValueError: If cache_type is not recognized
    """
    if cache_type == "memory":
        return MemoryResponseCache(max_entries=max_entries, name=name)
    else:
        raise ValueError(f"Unknown response cache type: {cache_type}")


__all__ = [
    "CachedResponse",
    "ResponseCache",
    "MemoryResponseCache",
    "create_response_cache",
    "origin_cache_key",
    "response_cache_key",
]
