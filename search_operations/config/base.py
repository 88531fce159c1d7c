"""
Base Search Configuration

This module defines enums and constants shared by search operations.
"""

from enum import Enum


class MultipleQueriesStrategy(str, Enum):
    """Enumeration of the strategies of a multi-query request"""
    NONE = "none"                                     # Run every query
    STOP_IF_ENOUGH_MATCHES = "stopIfEnoughMatches"    # Skip the remaining queries once one has enough hits


# Wire name of each SearchQuery field
PARAMETER_NAMES = {
    "query": "query",
    "facets": "facets",
    "facet_filters": "facetFilters",
    "numeric_filters": "numericFilters",
    "filters": "filters",
    "page": "page",
    "hits_per_page": "hitsPerPage",
    "attributes_to_retrieve": "attributesToRetrieve",
    "attributes_to_highlight": "attributesToHighlight",
    "attributes_to_snippet": "attributesToSnippet",
    "analytics": "analytics",
}
