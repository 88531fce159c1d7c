"""
Search Operations Module

This module provides the read operations of a search application:
- Search query model and its `params` encoding
- Per-index search, multi-query, facet-value search and browsing
- Per-index response caching
- Disjunctive faceting, batched or fanned out concurrently

All requests go through the client's request executor, which fails over
between hosts on transport errors.
"""

# Core exports
from .core import (
    BaseIndexOperations,
    SearchIndex,
    build_multiple_queries_request,
    index_path,
    SearchError,
    InvalidSearchParametersError,
    AggregationError,
    MalformedResultError,
    AggregationTimeoutError,
)

# Configuration exports
from .config import (
    MultipleQueriesStrategy,
    SearchQuery,
    FilterExpression,
)

# Faceting exports
from .faceting import (
    FacetQuerySet,
    AggregatedResult,
    merge_results,
    AggregationState,
    AggregationMetrics,
    DisjunctiveFacetAggregator,
)

__all__ = [
    # Core
    "BaseIndexOperations",
    "SearchIndex",
    "build_multiple_queries_request",
    "index_path",

    # Exceptions
    "SearchError",
    "InvalidSearchParametersError",
    "AggregationError",
    "MalformedResultError",
    "AggregationTimeoutError",

    # Configuration
    "MultipleQueriesStrategy",
    "SearchQuery",
    "FilterExpression",

    # Faceting
    "FacetQuerySet",
    "AggregatedResult",
    "merge_results",
    "AggregationState",
    "AggregationMetrics",
    "DisjunctiveFacetAggregator",
]
