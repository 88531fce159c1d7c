"""
Search Configuration Module

Query model and enums shared by search operations.
"""

from .base import MultipleQueriesStrategy, PARAMETER_NAMES
from .query import SearchQuery, FilterExpression

__all__ = [
    "MultipleQueriesStrategy",
    "PARAMETER_NAMES",
    "SearchQuery",
    "FilterExpression",
]
