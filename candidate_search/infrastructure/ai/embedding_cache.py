"""In-memory TTL cache for query embeddings."""

import asyncio
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class EmbeddingCache:
    """Bounded LRU cache of query vectors with a fixed time-to-live.

    Entries are ``(vector, expires_at)`` pairs; a read refreshes recency but
    never extends the expiry.
    """

    def __init__(
        self,
        max_size: int = 10000,
        ttl_seconds: int = 3600,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_size = max(1, max_size)
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, Tuple[List[float], float]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._counters = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0, "expired": 0}

    async def get(self, key: str) -> Optional[List[float]]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._counters["misses"] += 1
                return None

            vector, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._counters["expired"] += 1
                self._counters["misses"] += 1
                return None

            self._entries.move_to_end(key)
            self._counters["hits"] += 1
            return list(vector)

    async def set(self, key: str, value: List[float]) -> None:
        async with self._lock:
            self._entries[key] = (list(value), self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)
            self._counters["sets"] += 1
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._counters["evictions"] += 1
                logger.debug("Query embedding evicted", key=evicted)

    async def clear(self) -> int:
        async with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            return dropped

    def get_stats(self) -> Dict[str, Any]:
        lookups = self._counters["hits"] + self._counters["misses"]
        return {
            **self._counters,
            "cache_size": len(self._entries),
            "max_size": self.max_size,
            "hit_rate": self._counters["hits"] / lookups if lookups else 0.0,
        }


__all__ = ["EmbeddingCache"]
