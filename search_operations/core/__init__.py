"""
Core Search Operations Module

This module provides the core infrastructure for search operations,
including the shared read path, the index operations and exceptions.
"""

from .base import BaseIndexOperations, build_multiple_queries_request, index_path
from .index import SearchIndex, as_search_query
from .search_ops_exceptions import (
    SearchError,
    InvalidSearchParametersError,
    AggregationError,
    MalformedResultError,
    AggregationTimeoutError,
)

__all__ = [
    # Base classes
    "BaseIndexOperations",
    "build_multiple_queries_request",
    "index_path",

    # Index
    "SearchIndex",
    "as_search_query",

    # Exceptions
    "SearchError",
    "InvalidSearchParametersError",
    "AggregationError",
    "MalformedResultError",
    "AggregationTimeoutError",
]
