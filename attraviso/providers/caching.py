"""
Caching utilities for providers.

EnrichmentCache maps namespaced source keys to resolved image URLs. One
instance is built at app startup and handed to every resolver; entries expire
after a fixed TTL and are evicted lazily the first time a stale read sees
them. Only successful resolutions are stored.
"""
import time
from typing import Callable, Dict, Optional, Tuple

KNOWLEDGEBASE = "knowledgebase"
ENCYCLOPEDIA = "encyclopedia"
SITE = "site"

NAMESPACES = (KNOWLEDGEBASE, ENCYCLOPEDIA, SITE)


def cache_key(namespace: str, raw: str) -> str:
    """Build a cache key so identical raw ids from different sources never collide.

    Args:
        namespace: One of NAMESPACES
        raw: Source-specific identifier (Wikidata id, `lang:title`, site URL)

    Returns:
        Key of the form `namespace:raw`
    """
    if namespace not in NAMESPACES:
        raise ValueError(f"Unknown cache namespace: {namespace}")
    return f"{namespace}:{raw}"


class EnrichmentCache:
    """In-memory key -> URL store with a fixed time-to-live."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl = ttl_seconds
        self._clock = clock
        # key -> (url, inserted_at)
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        url, inserted_at = entry
        if self._clock() - inserted_at >= self.ttl:
            # Stale: drop it so the next lookup goes back to the source
            self._entries.pop(key, None)
            return None
        return url

    def set(self, key: str, url: str) -> None:
        if not url:
            return
        self._entries[key] = (url, self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
