"""
Search Operations Exceptions

This module defines custom exceptions for search operations,
providing clear error handling and reporting for search-related issues.
"""

from typing import Optional

from searchops_exceptions import QueryError, OperationTimeoutError


class SearchError(QueryError):
    """Base exception for all search-related errors"""
    pass


class InvalidSearchParametersError(SearchError):
    """Raised when search parameters are invalid"""
    pass


class AggregationError(SearchError):
    """
    Raised when a disjunctive faceting search fails.

    Any failing sub-query fails the whole aggregation; the original error is
    kept in `cause` (and chained as __cause__).
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None, query_position: Optional[int] = None):
        super().__init__(message)
        self.cause = cause
        self.query_position = query_position

    @property
    def status_code(self) -> Optional[int]:
        """Status code of the underlying application error, if any."""
        return getattr(self.cause, "status_code", None)


class MalformedResultError(AggregationError):
    """Raised when a sub-query result does not have the expected shape"""
    pass


class AggregationTimeoutError(AggregationError, OperationTimeoutError):
    """Raised when a disjunctive faceting search exceeds its deadline"""
    pass
