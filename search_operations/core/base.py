"""
Base Search Operations

This module provides the read path shared by every search operation:
cache lookup, request execution with host failover, status check, JSON
decoding and cache fill, in that order. The cache sits entirely in front of
host selection; a hit never touches the host pool.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import quote

from host_management import HostRole
from request_execution import RequestExecutor, RequestSpec, Response
from response_cache import ResponseCache, DisabledResponseCache, build_cache_key
from searchops_exceptions import ResponseDecodeError
from ..config.base import MultipleQueriesStrategy
from ..config.query import SearchQuery

logger = logging.getLogger(__name__)


def index_path(index_name: str, *segments: str) -> str:
    """Build an index URL path, escaping the index name and segments."""
    parts = [quote(index_name, safe="")] + [quote(segment, safe="") for segment in segments]
    return "/1/indexes/" + "/".join(parts)


def build_multiple_queries_request(
    requests: Sequence[Tuple[str, SearchQuery]],
    strategy: MultipleQueriesStrategy = MultipleQueriesStrategy.NONE,
    read_timeout: Optional[float] = None,
) -> RequestSpec:
    """
    Build one batched request running several queries.

    Args:
        requests: (index name, query) pairs; results come back in the same order
        strategy: Multi-query strategy
        read_timeout: Per-attempt read timeout override

    Returns:
        RequestSpec for the multi-query endpoint
    """
    body = {
        "requests": [
            {"indexName": index_name, "params": query.build()}
            for index_name, query in requests
        ],
        "strategy": MultipleQueriesStrategy(strategy).value,
    }
    return RequestSpec("POST", "/1/indexes/*/queries", body=body, read_timeout=read_timeout)


class BaseIndexOperations:
    """
    Read operations against one index.

    Holds the executor shared with the owning client and this index's own
    response cache. Whether the cache is active or not, the read path is the
    same: a DisabledResponseCache simply never hits.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        index_name: str,
        cache: Optional[ResponseCache] = None,
    ):
        """
        Initialize the index operations.

        Args:
            executor: RequestExecutor shared with the owning client
            index_name: Name of the index
            cache: Response cache for search requests (disabled when None)
        """
        if not index_name:
            raise ValueError("index_name must not be empty")
        self._executor = executor
        self.index_name = index_name
        self._cache = cache if cache is not None else DisabledResponseCache()

    async def _read(self, request: RequestSpec, cacheable: bool = False) -> Dict[str, Any]:
        """
        Run a read request and decode its JSON answer.

        Args:
            request: The request to run against the read hosts
            cacheable: Whether the answer may be served from / stored in the cache

        Returns:
            The decoded JSON object

        Raises:
            ApplicationError: the service rejected the request
            HostsExhaustedError: no read host could be reached
            ResponseDecodeError: the answer is not a JSON object
        """
        key = build_cache_key(request.method, request.path, request.body, request.params) if cacheable else None
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {request.method} {request.path}")
                return self._decode(cached, "cache")

        response = await self._executor.execute(request, HostRole.READ)
        response.raise_for_status()
        content = self._decode(response.body, response.host)

        if key is not None:
            self._cache.put(key, response.body)
        return content

    @staticmethod
    def _decode(body: bytes, source: str) -> Dict[str, Any]:
        content = Response(status_code=200, body=body, host=source).json()
        if not isinstance(content, dict):
            raise ResponseDecodeError(f"Expected a JSON object from '{source}', got {type(content).__name__}")
        return content
