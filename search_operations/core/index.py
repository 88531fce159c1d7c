"""
Search Index

This module provides the read operations of one index: plain and batched
searches, disjunctive faceting, facet-value search and browsing, along with
the per-index search cache switches.
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from request_execution import RequestExecutor, RequestSpec
from response_cache import ResponseCache, DisabledResponseCache, DEFAULT_TTL, DEFAULT_MAX_SIZE
from .base import BaseIndexOperations, build_multiple_queries_request, index_path
from .search_ops_exceptions import InvalidSearchParametersError
from ..config.base import MultipleQueriesStrategy
from ..config.query import SearchQuery
from ..faceting import AggregatedResult, DisjunctiveFacetAggregator

logger = logging.getLogger(__name__)

QueryInput = Union[SearchQuery, str, None]


def as_search_query(query: QueryInput) -> SearchQuery:
    """Accept a SearchQuery, a bare query string or None."""
    if query is None:
        return SearchQuery()
    if isinstance(query, SearchQuery):
        return query
    if isinstance(query, str):
        return SearchQuery(query=query)
    raise InvalidSearchParametersError(f"Unsupported query type: {type(query).__name__}")


class SearchIndex(BaseIndexOperations):
    """
    Read access to one index of the search application.

    Instances are created by SearchClient.init_index() and share the client's
    executor (and so its host pool). Each index owns its search cache.

    Example:
        >>> index = client.init_index("products")
        >>> content = await index.search(SearchQuery(query="phone", facets=["brand"]))
        >>> result = await index.search_disjunctive_faceting(
        ...     SearchQuery(query="phone", facets=["brand", "category"]),
        ...     disjunctive_facets=["brand"],
        ...     refinements={"brand": ["Apple", "Samsung"], "category": ["device"]},
        ... )
        >>> result.disjunctive_facets["brand"]
        {'Apple': 2, 'Samsung': 1, 'Whatever': 1}
    """

    def __init__(
        self,
        executor: RequestExecutor,
        index_name: str,
        search_timeout: Optional[float] = None,
        cache_enabled: bool = False,
        cache_ttl: float = DEFAULT_TTL,
        cache_max_size: int = DEFAULT_MAX_SIZE,
        use_batch: bool = True,
        default_deadline: Optional[float] = None,
        metrics_callback: Optional[Callable[[Any], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the index.

        Args:
            executor: RequestExecutor shared with the owning client
            index_name: Name of the index
            search_timeout: Read timeout applied to search requests
            cache_enabled: Start with the search cache enabled
            cache_ttl: Default cache entry lifetime in seconds
            cache_max_size: Default cache capacity
            use_batch: Send disjunctive faceting sub-queries as one multi-query
            default_deadline: Deadline for disjunctive faceting when the call gives none
            metrics_callback: Receives an AggregationMetrics after each faceting search
            clock: Monotonic time source, shared with the cache
        """
        self._clock = clock
        self._cache_ttl = cache_ttl
        self._cache_max_size = cache_max_size
        cache = ResponseCache(cache_ttl, cache_max_size, clock) if cache_enabled else DisabledResponseCache()
        super().__init__(executor, index_name, cache)

        self.search_timeout = search_timeout
        self.use_batch = use_batch
        self.default_deadline = default_deadline
        self.metrics_callback = metrics_callback

    @property
    def search_cache(self) -> ResponseCache:
        """The active search cache (a DisabledResponseCache when caching is off)."""
        return self._cache

    def enable_search_cache(self, ttl: Optional[float] = None, max_size: Optional[int] = None) -> None:
        """
        Start caching search results, dropping anything cached so far.

        Args:
            ttl: Entry lifetime in seconds (defaults to the configured TTL)
            max_size: Capacity (defaults to the configured size)
        """
        self._cache_ttl = ttl if ttl is not None else self._cache_ttl
        self._cache_max_size = max_size if max_size is not None else self._cache_max_size
        self._cache = ResponseCache(self._cache_ttl, self._cache_max_size, self._clock)
        logger.info(
            f"Search cache enabled for index '{self.index_name}' "
            f"(ttl={self._cache_ttl}s, max_size={self._cache_max_size})"
        )

    def disable_search_cache(self) -> None:
        """Stop caching search results and drop the cached ones."""
        self._cache = DisabledResponseCache()
        logger.info(f"Search cache disabled for index '{self.index_name}'")

    def clear_search_cache(self) -> None:
        """Drop every cached result, keeping the cache enabled."""
        self._cache.clear()

    async def search(self, query: QueryInput = None) -> Dict[str, Any]:
        """
        Search the index.

        Args:
            query: SearchQuery, bare query text, or None for an empty query

        Returns:
            The service's answer (hits, nbHits, facets...)
        """
        query = as_search_query(query)
        request = RequestSpec(
            "POST",
            index_path(self.index_name, "query"),
            body={"params": query.build()},
            read_timeout=self.search_timeout,
        )
        return await self._read(request, cacheable=True)

    async def multiple_queries(
        self,
        queries: Sequence[QueryInput],
        strategy: Union[MultipleQueriesStrategy, str] = MultipleQueriesStrategy.NONE,
    ) -> Dict[str, Any]:
        """
        Run several queries on this index in one request.

        Args:
            queries: The queries; results come back in the same order
            strategy: Multi-query strategy

        Returns:
            The service's answer, {"results": [...]}
        """
        if not queries:
            raise InvalidSearchParametersError("multiple_queries needs at least one query")
        request = build_multiple_queries_request(
            [(self.index_name, as_search_query(query)) for query in queries],
            MultipleQueriesStrategy(strategy),
            read_timeout=self.search_timeout,
        )
        return await self._read(request, cacheable=True)

    async def search_disjunctive_faceting(
        self,
        query: QueryInput,
        disjunctive_facets: Sequence[str],
        refinements: Optional[Dict[str, List[str]]] = None,
        deadline: Optional[float] = None,
    ) -> AggregatedResult:
        """
        Search with OR semantics inside each disjunctive facet.

        Args:
            query: Base query; its facet filters are kept as is
            disjunctive_facets: Facets whose refined values are ORed
            refinements: Selected values per facet
            deadline: Seconds allowed for the whole aggregation

        Returns:
            AggregatedResult with per-facet disjunctive counts
        """
        aggregator = DisjunctiveFacetAggregator(
            self,
            use_batch=self.use_batch,
            default_deadline=self.default_deadline,
            metrics_callback=self.metrics_callback,
        )
        return await aggregator.search(as_search_query(query), disjunctive_facets, refinements or {}, deadline)

    async def search_for_facet_values(
        self,
        facet_name: str,
        text: str,
        query: QueryInput = None,
    ) -> Dict[str, Any]:
        """
        Search the values of one facet.

        Args:
            facet_name: Facet to search in
            text: Text the facet values should match
            query: Restricts counts to the records matching this query

        Returns:
            The service's answer, {"facetHits": [...]}
        """
        if not facet_name:
            raise InvalidSearchParametersError("facet_name must not be empty")
        base = as_search_query(query)
        params = base.with_updates(extra={**base.extra, "facetQuery": text})
        request = RequestSpec(
            "POST",
            index_path(self.index_name, "facets", facet_name, "query"),
            body={"params": params.build()},
            read_timeout=self.search_timeout,
        )
        return await self._read(request, cacheable=True)

    async def browse(self, query: QueryInput = None) -> Dict[str, Any]:
        """
        Browse the index from the start.

        Returns:
            One page of records, with a `cursor` when more remain
        """
        query = as_search_query(query)
        request = RequestSpec("POST", index_path(self.index_name, "browse"), body={"params": query.build()})
        return await self._read(request, cacheable=True)

    async def browse_from(self, cursor: str) -> Dict[str, Any]:
        """
        Continue browsing from a cursor returned by a previous page.
        """
        if not cursor:
            raise InvalidSearchParametersError("cursor must not be empty")
        request = RequestSpec("POST", index_path(self.index_name, "browse"), body={"cursor": cursor})
        return await self._read(request, cacheable=True)

    async def browse_all(self, query: QueryInput = None):
        """
        Iterate over every record matching the query, following cursors.

        Example:
            >>> async for record in index.browse_all("phone"):
            ...     print(record["objectID"])
        """
        page = await self.browse(query)
        while True:
            for hit in page.get("hits", []):
                yield hit
            cursor = page.get("cursor")
            if not cursor:
                return
            page = await self.browse_from(cursor)

    def __repr__(self) -> str:
        return f"SearchIndex(name={self.index_name!r}, cache={'on' if self._cache.enabled else 'off'})"
