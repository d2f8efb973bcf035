"""
In-process TTL cache for single flight searches.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from flightwatch.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class CacheEntry:
    value: Any
    timestamp: float


def make_search_key(
    origin: str,
    destination: str,
    departure_date,
    return_date=None,
    adults: int = 1,
    travel_class: str = "ECONOMY",
) -> str:
    parts = [
        "flight",
        origin,
        destination,
        str(departure_date),
        str(return_date) if return_date else "oneway",
        str(adults),
        travel_class,
    ]
    return ":".join(parts).lower()


class SearchCache:
    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.search_cache_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return a cached value, evicting it first if it has expired."""
        entry = self._entries.get(key)
        if entry is not None and (self._clock() - entry.timestamp) > self.ttl_seconds:
            del self._entries[key]
            entry = None

        if entry is None:
            self.misses += 1
            logger.debug(f"Cache miss: {key}")
            return None

        self.hits += 1
        logger.debug(f"Cache hit: {key}")
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry. Returns the number of entries cleared."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Search cache cleared ({count} entries)")
        return count

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def stats(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "keys": len(self._entries),
            "ttl_seconds": self.ttl_seconds,
        }
