import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote

import pytest

from client import SearchClient
from config import SearchOpsSettings
from host_management import ConnectTimeoutError, TransportError
from request_execution import RequestSpec, Response
from search_operations import SearchQuery


class FakeClock:
    """Monotonic clock moved by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


PHONE_RECORDS = [
    {"objectID": "1", "name": "iPhone 6", "brand": "Apple", "category": "device", "stars": 4},
    {"objectID": "2", "name": "iPhone 6 Plus", "brand": "Apple", "category": "device", "stars": 5},
    {"objectID": "3", "name": "iPhone cover", "brand": "Apple", "category": "accessory", "stars": 3},
    {"objectID": "4", "name": "Galaxy S5", "brand": "Samsung", "category": "device", "stars": 4},
    {"objectID": "5", "name": "Wonder Phone", "brand": "Samsung", "category": "device", "stars": 5},
    {"objectID": "6", "name": "Platinum Phone Cover", "brand": "Samsung", "category": "accessory", "stars": 2},
    {"objectID": "7", "name": "Lame Phone", "brand": "Whatever", "category": "device", "stars": 1},
    {"objectID": "8", "name": "Lame Phone cover", "brand": "Whatever", "category": "accessory", "stars": 1},
]

HOTEL_RECORDS = [
    {"objectID": "A", "name": "Hotel A", "stars": "*", "facilities": ["wifi", "bath", "spa"], "city": "Paris"},
    {"objectID": "B", "name": "Hotel B", "stars": "*", "facilities": ["wifi"], "city": "Paris"},
    {"objectID": "C", "name": "Hotel C", "stars": "**", "facilities": ["bath"], "city": "San Fancisco"},
    {"objectID": "D", "name": "Hotel D", "stars": "****", "facilities": ["spa"], "city": "Paris"},
    {"objectID": "E", "name": "Hotel E", "stars": "****", "facilities": ["spa"], "city": "New York"},
]


def _values(record: Dict[str, Any], attribute: str) -> List[Any]:
    value = record.get(attribute)
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _matches_filter(record: Dict[str, Any], expression: str) -> bool:
    attribute, _, value = expression.partition(":")
    return value in [str(v) for v in _values(record, attribute)]


class FakeSearchService:
    """
    In-memory stand-in for the search service, plugged in as a transport.

    Answers searches, multi-queries, facet-value searches, browses and index
    listings over a list of records. Facet filters are evaluated: strings
    are ANDed, inner lists are ORed.
    """

    def __init__(self, records: List[Dict[str, Any]], index_name: str = "products") -> None:
        self.records = records
        self.index_name = index_name
        self.calls: List[Tuple[str, RequestSpec, float, float]] = []
        self.down_hosts: Dict[str, Callable[[str], TransportError]] = {}
        self.non_exhaustive_facets: set = set()
        self.error_for: Optional[Callable[[SearchQuery], Optional[Tuple[int, str]]]] = None
        self.delay_for: Optional[Callable[[SearchQuery], float]] = None
        self.browse_page_size = 3
        self.closed = False

    def take_down(self, host: str, error: Optional[Callable[[str], TransportError]] = None) -> None:
        self.down_hosts[host] = error or (lambda h: ConnectTimeoutError(f"Connect timeout to '{h}'", host=h))

    @property
    def hosts_called(self) -> List[str]:
        return [host for host, _, _, _ in self.calls]

    async def send(self, host: str, request: RequestSpec, connect_timeout: float, read_timeout: float) -> Response:
        self.calls.append((host, request, connect_timeout, read_timeout))
        if host in self.down_hosts:
            raise self.down_hosts[host](host)
        status, payload = await self._handle(request)
        return Response(status_code=status, body=json.dumps(payload).encode("utf-8"), host=host)

    async def close(self) -> None:
        self.closed = True

    async def _handle(self, request: RequestSpec) -> Tuple[int, Dict[str, Any]]:
        path = request.path
        if request.method == "GET" and path == "/1/indexes":
            return 200, {"items": [{"name": self.index_name, "entries": len(self.records)}], "nbPages": 1}

        if path == "/1/indexes/*/queries":
            results = []
            for entry in request.body["requests"]:
                status, answer = await self._search(SearchQuery.parse(entry["params"]))
                if status != 200:
                    return status, answer
                results.append(dict(answer, index=entry["indexName"]))
            return 200, {"results": results}

        prefix = f"/1/indexes/{self.index_name}/"
        if not path.startswith(prefix):
            return 404, {"message": "Index does not exist", "status": 404}
        action = path[len(prefix):]

        if action == "query":
            return await self._search(SearchQuery.parse(request.body["params"]))
        if action == "browse":
            return self._browse(request.body)
        if action.startswith("facets/") and action.endswith("/query"):
            facet = unquote(action[len("facets/"):-len("/query")])
            return self._facet_values(facet, SearchQuery.parse(request.body["params"]))
        return 404, {"message": f"Unknown path {path}", "status": 404}

    def _matching(self, query: SearchQuery) -> List[Dict[str, Any]]:
        text = query.query.lower()
        matching = []
        for record in self.records:
            if text and text not in record["name"].lower():
                continue
            ok = True
            for expression in query.facet_filters or []:
                if isinstance(expression, list):
                    ok = any(_matches_filter(record, e) for e in expression)
                else:
                    ok = _matches_filter(record, expression)
                if not ok:
                    break
            if ok:
                matching.append(record)
        return matching

    async def _search(self, query: SearchQuery) -> Tuple[int, Dict[str, Any]]:
        if self.delay_for is not None:
            delay = self.delay_for(query)
            if delay:
                await asyncio.sleep(delay)
        if self.error_for is not None:
            error = self.error_for(query)
            if error is not None:
                status, message = error
                return status, {"message": message, "status": status}

        matching = self._matching(query)
        facets: Dict[str, Dict[str, int]] = {}
        facets_stats: Dict[str, Dict[str, float]] = {}
        for facet in query.facets or []:
            counts: Dict[str, int] = {}
            numbers = []
            for record in matching:
                for value in _values(record, facet):
                    counts[str(value)] = counts.get(str(value), 0) + 1
                    if isinstance(value, (int, float)):
                        numbers.append(value)
            facets[facet] = counts
            if numbers:
                facets_stats[facet] = {
                    "min": min(numbers), "max": max(numbers),
                    "avg": sum(numbers) / len(numbers), "sum": sum(numbers),
                }

        hits_per_page = 20 if query.hits_per_page is None else query.hits_per_page
        page = query.page or 0
        hits = matching[page * hits_per_page:(page + 1) * hits_per_page]
        answer: Dict[str, Any] = {
            "hits": hits,
            "nbHits": len(matching),
            "page": page,
            "hitsPerPage": hits_per_page,
            "query": query.query,
            "params": query.build(),
            "exhaustiveFacetsCount": not (set(query.facets or []) & self.non_exhaustive_facets),
        }
        if query.facets is not None:
            answer["facets"] = facets
        if facets_stats:
            answer["facets_stats"] = facets_stats
        return 200, answer

    def _browse(self, body: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        if "cursor" in body:
            start = int(body["cursor"])
            matching = self.records
        else:
            start = 0
            matching = self._matching(SearchQuery.parse(body.get("params", "")))
        page = matching[start:start + self.browse_page_size]
        answer: Dict[str, Any] = {"hits": page, "nbHits": len(matching)}
        if start + self.browse_page_size < len(matching):
            answer["cursor"] = str(start + self.browse_page_size)
        return 200, answer

    def _facet_values(self, facet: str, query: SearchQuery) -> Tuple[int, Dict[str, Any]]:
        text = str(query.extra.get("facetQuery", "")).lower()
        counts: Dict[str, int] = {}
        for record in self._matching(query):
            for value in _values(record, facet):
                if str(value).lower().startswith(text):
                    counts[str(value)] = counts.get(str(value), 0) + 1
        return 200, {"facetHits": [{"value": v, "count": c} for v, c in sorted(counts.items())]}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def phone_service() -> FakeSearchService:
    return FakeSearchService(PHONE_RECORDS)


@pytest.fixture
def hotel_service() -> FakeSearchService:
    return FakeSearchService(HOTEL_RECORDS, index_name="hotels")


@pytest.fixture
def make_client(clock: FakeClock):
    def _make(service: FakeSearchService, **overrides: Any) -> SearchClient:
        data: Dict[str, Any] = {
            "connection": {"read_hosts": ["read-1.test", "read-2.test", "read-3.test"],
                           "write_hosts": ["write-1.test"]},
            "monitoring": {"log_level": "DEBUG"},
        }
        for section, values in overrides.items():
            data.setdefault(section, {}).update(values)
        return SearchClient(SearchOpsSettings(**data), transport=service, clock=clock)

    return _make
