"""
Response Cache

This module provides a short-lived cache of complete search responses keyed
by the normalized request, so repeated identical searches skip the
pipeline.
"""

import asyncio
import hashlib
import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from ..core.models import SearchQuery, SearchResponse

logger = logging.getLogger(__name__)


def cache_key(query: SearchQuery) -> str:
    """
    SHA-256 of the normalized request.

    Text is trimmed and lower-cased, filter sets are sorted and options are
    rendered with their defaults, so equivalent requests share a key.
    """
    payload = json.dumps(query.normalized(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    TTL cache of search responses.

    Entries expire a fixed ttl after they are stored. When full, the entry
    stored earliest is evicted.

    Args:
        ttl: Seconds an entry stays valid
        max_entries: Maximum number of cached responses
        clock: Monotonic time source; injectable for tests
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_entries: int = 1000,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: Dict[str, Tuple[SearchResponse, float]] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    async def get(self, key: str) -> Optional[SearchResponse]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            response, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry expired: {key[:12]}")
                return None
            self._hits += 1
            return response

    async def set(self, key: str, response: SearchResponse) -> None:
        async with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._evictions += 1
            self._entries[key] = (response, self._clock() + self.ttl)
        logger.debug(f"Cached response {key[:12]} for {self.ttl}s")

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
        logger.info("Response cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the cache.

        Returns:
            Dictionary containing size, hit and miss counts and hit rate
        """
        lookups = self._hits + self._misses
        return {
            "size": len(self._entries),
            "maxEntries": self.max_entries,
            "ttl": self.ttl,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hitRate": round(self._hits / lookups, 3) if lookups else 0.0,
        }
