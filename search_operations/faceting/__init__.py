"""
Disjunctive Faceting Module

This module answers faceted searches where the values selected within one
facet are ORed (brand is Apple OR Samsung) while different facets are ANDed:

- FacetQuerySet builds the primary query and one side query per disjunctive facet
- merge_results / AggregatedResult combine their answers
- DisjunctiveFacetAggregator runs the queries, batched or concurrently
"""

from .query_set import FacetQuerySet, facet_filter
from .results import AggregatedResult, merge_results
from .aggregator import AggregationState, AggregationMetrics, DisjunctiveFacetAggregator

__all__ = [
    "FacetQuerySet",
    "facet_filter",
    "AggregatedResult",
    "merge_results",
    "AggregationState",
    "AggregationMetrics",
    "DisjunctiveFacetAggregator",
]
