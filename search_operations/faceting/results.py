"""
Aggregated Results

This module merges the answers to the queries of a FacetQuerySet into one
result. Merging is a pure function of its inputs: the answers are never
modified, and merging the same answers twice gives equal results.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..core.search_ops_exceptions import MalformedResultError
from .query_set import FacetQuerySet

# Keys of the primary answer given their own AggregatedResult field
_MERGED_KEYS = {"hits", "nbHits", "facets", "facets_stats", "exhaustiveFacetsCount"}


@dataclass(frozen=True)
class AggregatedResult:
    """
    Merged answer of a disjunctive faceting search.

    Attributes:
        hits: Hits of the primary query
        nb_hits: Number of records matching every refinement
        facets: Counts of the primary query's facets
        disjunctive_facets: Counts of each disjunctive facet, computed without its own refinements
        exhaustive_facets_count: Whether every sub-query's counts are exhaustive
        facets_stats: Numeric facet statistics
        extra: Any other field of the primary answer (page, nbPages, query...)
    """
    hits: List[Dict[str, Any]] = field(default_factory=list)
    nb_hits: int = 0
    facets: Dict[str, Dict[str, int]] = field(default_factory=dict)
    disjunctive_facets: Dict[str, Dict[str, int]] = field(default_factory=dict)
    exhaustive_facets_count: bool = True
    facets_stats: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Render the result in the service's answer format."""
        content = copy.deepcopy(self.extra)
        content.update({
            "hits": copy.deepcopy(self.hits),
            "nbHits": self.nb_hits,
            "facets": copy.deepcopy(self.facets),
            "disjunctiveFacets": copy.deepcopy(self.disjunctive_facets),
            "exhaustiveFacetsCount": self.exhaustive_facets_count,
        })
        if self.facets_stats:
            content["facets_stats"] = copy.deepcopy(self.facets_stats)
        return content


def _mapping(answer: Dict[str, Any], key: str, position: int) -> Dict[str, Any]:
    value = answer.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedResultError(
            f"Result {position}: '{key}' should be an object, got {type(value).__name__}",
            query_position=position,
        )
    return value


def _counts(value: Any, facet: str, position: int) -> Dict[str, int]:
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(
        isinstance(name, str) and isinstance(count, int) and not isinstance(count, bool)
        for name, count in value.items()
    ):
        raise MalformedResultError(
            f"Result {position}: counts of facet '{facet}' should map values to integers",
            query_position=position,
        )
    return dict(value)


def merge_results(sub_results: Sequence[Dict[str, Any]], query_set: FacetQuerySet) -> AggregatedResult:
    """
    Merge the answers of a FacetQuerySet's queries, in query order.

    The exhaustive flag is true only if every answer reports exhaustive
    counts; an answer without the flag counts as not exhaustive. Refined
    values of a disjunctive facet that the side query did not count are
    reported with a count of 0.

    Raises:
        MalformedResultError: wrong number of answers, or an answer of the wrong shape
    """
    expected = 1 + len(query_set.disjunctive_facets)
    if len(sub_results) != expected:
        raise MalformedResultError(f"Expected {expected} results, got {len(sub_results)}")
    for position, answer in enumerate(sub_results):
        if not isinstance(answer, dict):
            raise MalformedResultError(
                f"Result {position} should be an object, got {type(answer).__name__}",
                query_position=position,
            )

    primary = sub_results[0]
    hits = primary.get("hits", [])
    if not isinstance(hits, list):
        raise MalformedResultError("Result 0: 'hits' should be a list", query_position=0)
    nb_hits = primary.get("nbHits", len(hits))
    if not isinstance(nb_hits, int) or isinstance(nb_hits, bool):
        raise MalformedResultError("Result 0: 'nbHits' should be an integer", query_position=0)

    facets = {facet: _counts(counts, facet, 0) for facet, counts in _mapping(primary, "facets", 0).items()}
    facets_stats = copy.deepcopy(_mapping(primary, "facets_stats", 0))

    disjunctive_facets: Dict[str, Dict[str, int]] = {}
    for position, facet in enumerate(query_set.disjunctive_facets, start=1):
        answer = sub_results[position]
        counts = _counts(_mapping(answer, "facets", position).get(facet), facet, position)
        for value in query_set.refined_values(facet):
            counts.setdefault(value, 0)
        disjunctive_facets[facet] = counts

        stats = _mapping(answer, "facets_stats", position)
        if facet in stats:
            facets_stats[facet] = copy.deepcopy(stats[facet])

    exhaustive = all(answer.get("exhaustiveFacetsCount", False) is True for answer in sub_results)

    return AggregatedResult(
        hits=copy.deepcopy(hits),
        nb_hits=nb_hits,
        facets=facets,
        disjunctive_facets=disjunctive_facets,
        exhaustive_facets_count=exhaustive,
        facets_stats=facets_stats,
        extra={key: copy.deepcopy(value) for key, value in primary.items() if key not in _MERGED_KEYS},
    )
