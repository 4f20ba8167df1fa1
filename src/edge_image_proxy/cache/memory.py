"""
In-process LRU response cache.

Entries live for the lifetime of the process; the oldest entry is evicted
once ``max_entries`` is exceeded.
"""

from collections import OrderedDict

from loguru import logger

from .base import CachedResponse, ResponseCache


class MemoryResponseCache(ResponseCache):
    """Bounded least-recently-used cache held in memory.

    Every operation completes without suspending, so coroutines on one
    event loop never observe a half-applied update.
    """

    def __init__(self, max_entries: int = 1024, name: str = "memory"):
        """
        Initialize the cache.

        Args:
            max_entries: Number of entries kept before evicting the least recently used
            name: Label used in log messages
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.name = name
        self._entries: OrderedDict[str, CachedResponse] = OrderedDict()

    async def get(self, key: str) -> CachedResponse | None:
        response = self._entries.get(key)
        if response is None:
            return None
        self._entries.move_to_end(key)
        return response

    async def put(self, key: str, response: CachedResponse) -> None:
        self._entries[key] = response
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted from {} cache: {}", self.name, evicted[:80])

    async def count(self) -> int:
        return len(self._entries)

    async def clear(self) -> None:
        self._entries.clear()
