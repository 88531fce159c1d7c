"""
Facet Query Set

This module decomposes one disjunctive faceting search into the concrete
queries that answer it: a primary query returning the hits, and one side
query per disjunctive facet returning that facet's counts as if it were
not refined.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..config.query import FilterExpression, SearchQuery
from ..core.search_ops_exceptions import InvalidSearchParametersError


def facet_filter(facet: str, value: str) -> str:
    """Build the filter expression selecting one facet value."""
    return f"{facet}:{value}"


@dataclass(frozen=True)
class FacetQuerySet:
    """
    The queries of one disjunctive faceting search.

    Refinements on a facet listed in `disjunctive_facets` are ORed together;
    refinements on any other facet are ANDed. A facet is therefore never both.

    Attributes:
        base_query: Query the caller started from
        disjunctive_facets: Disjunctive facets, duplicates removed, in order
        refinements: Selected values per facet, in order
    """
    base_query: SearchQuery
    disjunctive_facets: Tuple[str, ...]
    refinements: Tuple[Tuple[str, Tuple[str, ...]], ...]

    @classmethod
    def build(
        cls,
        base_query: SearchQuery,
        disjunctive_facets: Sequence[str],
        refinements: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> "FacetQuerySet":
        """
        Validate and normalize the inputs of a disjunctive faceting search.

        Raises:
            InvalidSearchParametersError: a facet name is empty, or refinement
                values are not a list of strings
        """
        if isinstance(disjunctive_facets, str):
            raise InvalidSearchParametersError("disjunctive_facets must be a list of facet names")

        facets: List[str] = []
        for facet in disjunctive_facets:
            if not facet:
                raise InvalidSearchParametersError("Disjunctive facet names must not be empty")
            if facet not in facets:
                facets.append(facet)

        normalized = []
        for facet, values in (refinements or {}).items():
            if not facet:
                raise InvalidSearchParametersError("Refined facet names must not be empty")
            if isinstance(values, str):
                raise InvalidSearchParametersError(
                    f"Refinements for '{facet}' must be a list of values, not a string"
                )
            normalized.append((facet, tuple(str(value) for value in values)))

        return cls(base_query=base_query, disjunctive_facets=tuple(facets), refinements=tuple(normalized))

    def refined_values(self, facet: str) -> Tuple[str, ...]:
        """Values selected for a facet (empty when not refined)."""
        for name, values in self.refinements:
            if name == facet:
                return values
        return ()

    def partition(self) -> Tuple[Dict[str, Tuple[str, ...]], Dict[str, Tuple[str, ...]]]:
        """
        Split the refinements into conjunctive and disjunctive ones.

        Returns:
            (conjunctive refinements, disjunctive refinements)
        """
        conjunctive: Dict[str, Tuple[str, ...]] = {}
        disjunctive: Dict[str, Tuple[str, ...]] = {}
        for facet, values in self.refinements:
            target = disjunctive if facet in self.disjunctive_facets else conjunctive
            target[facet] = values
        return conjunctive, disjunctive

    def conjunctive_filters(self) -> List[str]:
        """One AND-ed filter per refined value of every non-disjunctive facet."""
        conjunctive, _ = self.partition()
        return [facet_filter(facet, value) for facet, values in conjunctive.items() for value in values]

    def disjunctive_filters(self, exclude: Optional[str] = None) -> List[List[str]]:
        """One OR-group per refined disjunctive facet, leaving `exclude` out."""
        _, disjunctive = self.partition()
        return [
            [facet_filter(facet, value) for value in values]
            for facet, values in disjunctive.items()
            if facet != exclude and values
        ]

    def _filtered(self, exclude: Optional[str] = None) -> Optional[List[FilterExpression]]:
        filters: List[FilterExpression] = list(self.base_query.facet_filters or [])
        filters.extend(self.conjunctive_filters())
        filters.extend(self.disjunctive_filters(exclude))
        return filters or None

    def primary_query(self) -> SearchQuery:
        """The query returning hits and conjunctive facet counts, with every refinement applied."""
        return self.base_query.with_updates(facet_filters=self._filtered())

    def side_query(self, facet: str) -> SearchQuery:
        """
        The query counting the values of one disjunctive facet.

        Every refinement applies except the facet's own; no hits are
        retrieved and the query stays out of analytics.
        """
        if facet not in self.disjunctive_facets:
            raise InvalidSearchParametersError(f"'{facet}' is not a disjunctive facet")
        return self.base_query.with_updates(
            facet_filters=self._filtered(exclude=facet),
            facets=[facet],
            hits_per_page=0,
            attributes_to_retrieve=[],
            attributes_to_highlight=[],
            attributes_to_snippet=[],
            analytics=False,
        )

    def queries(self) -> List[SearchQuery]:
        """The primary query followed by one side query per disjunctive facet."""
        return [self.primary_query()] + [self.side_query(facet) for facet in self.disjunctive_facets]
