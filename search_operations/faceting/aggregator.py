"""
Disjunctive Facet Aggregator

This module runs the queries of a disjunctive faceting search and merges
their answers. The queries go either as one multi-query request, with
answers matched by position, or as concurrent searches joined before
merging. Either way, one failing query fails the whole search.
"""

import time
import asyncio
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from searchops_exceptions import SearchOpsError
from ..config.query import SearchQuery
from ..core.search_ops_exceptions import (
    SearchError,
    InvalidSearchParametersError,
    AggregationError,
    AggregationTimeoutError,
    MalformedResultError,
)
from .query_set import FacetQuerySet
from .results import AggregatedResult, merge_results

logger = logging.getLogger(__name__)


class AggregationState(Enum):
    """
    Enumeration of the states of one aggregation.

    BUILDING -> DISPATCHING -> MERGING -> DONE, or FAILED from any of them.
    """
    BUILDING = "building"
    DISPATCHING = "dispatching"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AggregationMetrics:
    """
    Metrics of one disjunctive faceting search.

    Attributes:
        index_name: Index searched
        mode: "single", "batch" or "fan-out"
        state: Current state
        query_count: Number of queries issued
        disjunctive_facet_count: Number of disjunctive facets
        build_time_ms: Time spent building queries
        dispatch_time_ms: Time spent waiting for answers
        merge_time_ms: Time spent merging answers
        total_time_ms: Total end-to-end time
        error_message: Error message if the search failed
        timestamp: Unix timestamp when the search started
        transitions: States visited, in order
    """
    index_name: str
    mode: str = "batch"
    state: AggregationState = AggregationState.BUILDING
    query_count: int = 0
    disjunctive_facet_count: int = 0
    build_time_ms: float = 0.0
    dispatch_time_ms: float = 0.0
    merge_time_ms: float = 0.0
    total_time_ms: float = 0.0
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    transitions: List[AggregationState] = field(default_factory=lambda: [AggregationState.BUILDING])

    def advance(self, state: AggregationState) -> None:
        self.state = state
        self.transitions.append(state)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert metrics to dictionary format.

        Returns:
            Dictionary representation of metrics
        """
        return {
            "index_name": self.index_name,
            "mode": self.mode,
            "state": self.state.value,
            "query_count": self.query_count,
            "disjunctive_facet_count": self.disjunctive_facet_count,
            "build_time_ms": round(self.build_time_ms, 2),
            "dispatch_time_ms": round(self.dispatch_time_ms, 2),
            "merge_time_ms": round(self.merge_time_ms, 2),
            "total_time_ms": round(self.total_time_ms, 2),
            "error_message": self.error_message,
            "timestamp": self.timestamp,
            "transitions": [state.value for state in self.transitions],
        }


class DisjunctiveFacetAggregator:
    """
    Runs disjunctive faceting searches against one index.

    The index only needs two coroutines: `search(query)` and
    `multiple_queries(queries)`. Both go through the index's cache and its
    client's host failover.

    Example:
        >>> aggregator = DisjunctiveFacetAggregator(index, use_batch=False)
        >>> result = await aggregator.search(
        ...     SearchQuery(query="h", facets=["city"]),
        ...     disjunctive_facets=["stars", "facilities"],
        ...     refinements={"stars": ["*"]},
        ...     deadline=2.0,
        ... )
    """

    def __init__(
        self,
        index: Any,
        use_batch: bool = True,
        default_deadline: Optional[float] = None,
        metrics_callback: Optional[Callable[[AggregationMetrics], None]] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            index: SearchIndex (or anything with the same search coroutines)
            use_batch: Send the queries as one multi-query request
            default_deadline: Seconds allowed per search when the call gives no deadline
            metrics_callback: Receives the AggregationMetrics of every search
        """
        if default_deadline is not None and default_deadline <= 0:
            raise ValueError("default_deadline must be positive")
        self._index = index
        self.use_batch = use_batch
        self.default_deadline = default_deadline
        self.metrics_callback = metrics_callback

    async def search(
        self,
        query: SearchQuery,
        disjunctive_facets: Sequence[str],
        refinements: Optional[Mapping[str, Sequence[str]]] = None,
        deadline: Optional[float] = None,
    ) -> AggregatedResult:
        """
        Run a disjunctive faceting search.

        Args:
            query: Base query
            disjunctive_facets: Facets whose refined values are ORed
            refinements: Selected values per facet
            deadline: Seconds allowed for the whole search; unanswered
                queries are cancelled when it passes

        Returns:
            AggregatedResult merged from every query's answer

        Raises:
            InvalidSearchParametersError: If the facets or refinements are invalid
            AggregationError: If any query fails, chained to its error
            AggregationTimeoutError: If the deadline passes first
        """
        timeout = deadline if deadline is not None else self.default_deadline
        if timeout is not None and timeout <= 0:
            raise InvalidSearchParametersError(f"Deadline must be positive, got {timeout}")

        start_time = time.time()
        metrics = AggregationMetrics(index_name=getattr(self._index, "index_name", ""))

        try:
            query_set = FacetQuerySet.build(query, disjunctive_facets, refinements)
            queries = query_set.queries()
            metrics.query_count = len(queries)
            metrics.disjunctive_facet_count = len(query_set.disjunctive_facets)
            metrics.build_time_ms = (time.time() - start_time) * 1000

            metrics.advance(AggregationState.DISPATCHING)
            dispatch_start = time.time()
            if len(queries) == 1:
                metrics.mode = "single"
                sub_results = [await self._run_single(queries[0], timeout)]
            elif self.use_batch:
                metrics.mode = "batch"
                sub_results = await self._run_batch(queries, timeout)
            else:
                metrics.mode = "fan-out"
                sub_results = await self._run_fan_out(queries, timeout)
            metrics.dispatch_time_ms = (time.time() - dispatch_start) * 1000

            metrics.advance(AggregationState.MERGING)
            merge_start = time.time()
            result = merge_results(sub_results, query_set)
            metrics.merge_time_ms = (time.time() - merge_start) * 1000

            metrics.advance(AggregationState.DONE)
            logger.info(
                f"Disjunctive faceting on '{metrics.index_name}' done: {metrics.query_count} queries "
                f"({metrics.mode}), {result.nb_hits} hits"
            )
            return result

        except SearchError as e:
            metrics.advance(AggregationState.FAILED)
            metrics.error_message = str(e)
            logger.error(f"Disjunctive faceting on '{metrics.index_name}' failed: {str(e)}")
            raise
        except SearchOpsError as e:
            metrics.advance(AggregationState.FAILED)
            metrics.error_message = str(e)
            logger.error(f"Disjunctive faceting on '{metrics.index_name}' failed: {str(e)}")
            raise AggregationError(f"Disjunctive faceting failed: {str(e)}", cause=e) from e
        except BaseException as e:
            metrics.advance(AggregationState.FAILED)
            metrics.error_message = str(e) or type(e).__name__
            logger.error(f"Disjunctive faceting on '{metrics.index_name}' interrupted: {type(e).__name__}")
            raise
        finally:
            metrics.total_time_ms = (time.time() - start_time) * 1000
            if self.metrics_callback:
                try:
                    self.metrics_callback(metrics)
                except Exception as e:
                    logger.error(f"Metrics callback failed: {str(e)}")

    async def _run_single(self, query: SearchQuery, timeout: Optional[float]) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(self._index.search(query), timeout)
        except asyncio.TimeoutError as e:
            raise AggregationTimeoutError(f"Search exceeded its deadline of {timeout}s") from e

    async def _run_batch(self, queries: List[SearchQuery], timeout: Optional[float]) -> List[Dict[str, Any]]:
        try:
            answer = await asyncio.wait_for(self._index.multiple_queries(queries), timeout)
        except asyncio.TimeoutError as e:
            raise AggregationTimeoutError(f"Multi-query exceeded its deadline of {timeout}s") from e

        results = answer.get("results") if isinstance(answer, dict) else None
        if not isinstance(results, list) or len(results) != len(queries):
            raise MalformedResultError(
                f"Multi-query answer should hold {len(queries)} results, got "
                f"{len(results) if isinstance(results, list) else 'none'}"
            )
        return results

    async def _run_fan_out(self, queries: List[SearchQuery], timeout: Optional[float]) -> List[Dict[str, Any]]:
        tasks = [asyncio.ensure_future(self._index.search(query)) for query in queries]
        try:
            done, pending = await asyncio.wait(tasks, timeout=timeout, return_when=asyncio.FIRST_EXCEPTION)

            failures = [
                (position, task.exception())
                for position, task in enumerate(tasks)
                if task in done and not task.cancelled() and task.exception() is not None
            ]
            if failures:
                position, error = failures[0]
                raise AggregationError(
                    f"Query {position} of {len(tasks)} failed: {str(error)}",
                    cause=error,
                    query_position=position,
                ) from error

            if pending:
                raise AggregationTimeoutError(
                    f"{len(pending)} of {len(tasks)} queries still running after the deadline of {timeout}s"
                )
            return [task.result() for task in tasks]
        finally:
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)
