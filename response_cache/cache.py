"""
Response Cache

Time-bounded, size-bounded memo of raw read responses.

Entries expire purely by time; nothing invalidates them on writes, which
matches the service's own consistency contract (a write is not guaranteed to
be visible to the next read anyway). When the cache is full, the entry that
has been resident longest is dropped, regardless of how recently it was read.
"""

import json
import time
import logging
import threading
from urllib.parse import urlencode
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL = 120.0
DEFAULT_MAX_SIZE = 64


def build_cache_key(
    method: str,
    path: str,
    body: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, str]] = None,
) -> str:
    """
    Derive the normalized key of a read request.

    Two requests get the same key when they target the same path with the
    same method, the same query parameters and an equal body, whatever the
    order of the parameters or of the body's keys.
    """
    if params:
        path = f"{path}?{urlencode(sorted(params.items()))}"
    canonical_body = "" if body is None else json.dumps(
        body, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    return f"{method.upper()} {path} {canonical_body}"


@dataclass(frozen=True)
class CacheEntry:
    """One cached response with its expiration time."""
    key: str
    value: bytes
    expires_at: float


class ResponseCache:
    """
    Thread-safe expiring cache with a hard capacity cap.

    Example:
        >>> cache = ResponseCache(ttl=120, max_size=64)
        >>> cache.put(key, response.body)
        >>> cache.get(key)   # -> bytes until the TTL elapses, then None
    """

    enabled = True

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            ttl: Default time to live of an entry, in seconds
            max_size: Maximum number of entries kept
            clock: Monotonic time source, in seconds
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._evictions = 0

        logger.debug(f"ResponseCache initialized: ttl={ttl}s, max_size={max_size}")

    def get(self, key: str) -> Optional[bytes]:
        """
        Look a key up.

        Returns:
            The cached bytes, or None on a miss. An expired entry is a miss
            and is dropped on the spot.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def put(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        """
        Store a value.

        Re-putting an existing key counts as a new insertion: the entry moves
        to the young end of the eviction order.

        Args:
            key: Normalized request key
            value: Raw response bytes
            ttl: Time to live in seconds; the cache default when None
        """
        ttl = self.ttl if ttl is None else ttl
        if ttl <= 0:
            return

        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=now + ttl)
            if len(self._entries) > self.max_size:
                self._purge_expired(now)
            while len(self._entries) > self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Evicted oldest cache entry: {evicted_key[:80]}")

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_metrics(self) -> Dict[str, Any]:
        """Get hit/miss/eviction counters for monitoring."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "enabled": self.enabled,
                "size": len(self._entries),
                "max_size": self.max_size,
                "ttl": self.ttl,
                "hits": self._hits,
                "misses": self._misses,
                "expirations": self._expirations,
                "evictions": self._evictions,
                "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
            }

    def __repr__(self) -> str:
        return f"ResponseCache(ttl={self.ttl}, max_size={self.max_size}, size={len(self)})"


class DisabledResponseCache(ResponseCache):
    """
    Cache that never retains anything.

    Used in place of a ResponseCache when caching is turned off, so callers
    go through exactly the same get/put sequence either way.
    """

    enabled = False

    def __init__(self):
        super().__init__(ttl=DEFAULT_TTL, max_size=1)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            self._misses += 1
        return None

    def put(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        return None

    def __repr__(self) -> str:
        return "DisabledResponseCache()"
