"""
Search Operations Exceptions

This module defines the root exceptions for the searchops package
to provide clear error handling and reporting.
"""

from typing import Any, Dict, Optional


class SearchOpsError(Exception):
    """Base exception for all searchops errors"""
    pass


class ConfigurationError(SearchOpsError):
    """Raised when configuration is invalid or missing"""
    pass


class ApplicationError(SearchOpsError):
    """
    Raised when the service answered with a non-success status.

    The request reached a host and the host rejected it (not found,
    validation failure, quota...). It is never retried on another host.
    """

    def __init__(self, status_code: int, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(f"[{status_code}] {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class QueryError(SearchOpsError):
    """Raised when a query operation fails"""
    pass


class OperationTimeoutError(SearchOpsError):
    """Raised when an operation times out"""
    pass


class ResponseDecodeError(SearchOpsError):
    """Raised when a successful response body is not the JSON document expected"""
    pass
