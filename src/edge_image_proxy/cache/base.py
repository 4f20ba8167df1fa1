"""
Abstract base class for response caches.

The orchestrator talks to two independently addressed caches, one for
transformed responses and one for raw origin fetches, through this interface.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class CachedResponse(BaseModel):
    """An HTTP-response-like cache entry."""

    model_config = ConfigDict(frozen=True)

    status: int = Field(default=200, description="HTTP status code")
    content_type: str = Field(default="application/octet-stream", description="Content-Type header value")
    body: bytes = Field(default=b"", description="Response body")


class ResponseCache(ABC):
    """Abstract interface for key/value response stores.

    Implementations must tolerate concurrent readers and writers; the last
    writer of a key wins.
    """

    @abstractmethod
    async def get(self, key: str) -> CachedResponse | None:
        """
        Look up a response.

        Args:
            key: Cache key from ``response_cache_key`` or ``origin_cache_key``

        Returns:
            The stored response, or None on a miss
        """
        pass

    @abstractmethod
    async def put(self, key: str, response: CachedResponse) -> None:
        """Store a response, replacing any previous entry for the key."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored entries."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""
        pass
