"""
Response Cache Module

In-memory memo of read responses (searches, multi-queries, browses):

- Entries expire after a TTL; expired entries are dropped on lookup
- Hard capacity cap, oldest insertion evicted first
- Keys normalized from method, path and canonical JSON body
- DisabledResponseCache stands in when caching is off
"""

from .cache import (
    ResponseCache,
    DisabledResponseCache,
    CacheEntry,
    build_cache_key,
    DEFAULT_TTL,
    DEFAULT_MAX_SIZE,
)

__all__ = [
    'ResponseCache',
    'DisabledResponseCache',
    'CacheEntry',
    'build_cache_key',
    'DEFAULT_TTL',
    'DEFAULT_MAX_SIZE',
]
