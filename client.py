"""
Search Client

This module provides the main client interface for the hosted search
service, wiring the configuration into a host pool, an HTTP transport and
a request executor shared by every index of the application.
"""

import time
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from config import SearchOpsSettings, ConnectionSettings, load_settings
from host_management import HostPool, HostRole
from request_execution import HttpxTransport, RequestExecutor, RequestSpec, Transport
from search_operations import (
    SearchIndex,
    SearchQuery,
    MultipleQueriesStrategy,
    AggregationMetrics,
    build_multiple_queries_request,
)
from searchops_exceptions import ConfigurationError, ResponseDecodeError

# Logger setup
logger = logging.getLogger(__name__)

# Loggers whose level follows monitoring.log_level
PACKAGE_LOGGERS = (
    "client",
    "config",
    "host_management",
    "request_execution",
    "response_cache",
    "search_operations",
)

FALLBACK_HOST_COUNT = 3


def default_hosts(connection: ConnectionSettings, role: HostRole) -> List[str]:
    """
    Derive the standard host list of an application.

    The primary host comes first: '{app}-dsn.<dsn_domain>' for reads and
    '{app}.<dsn_domain>' for writes, followed by the numbered fallback hosts
    '{app}-1..3.<fallback_domain>'.
    """
    app_id = connection.application_id.lower()
    primary = f"{app_id}-dsn.{connection.dsn_domain}" if role == HostRole.READ else f"{app_id}.{connection.dsn_domain}"
    fallbacks = [f"{app_id}-{i}.{connection.fallback_domain}" for i in range(1, FALLBACK_HOST_COUNT + 1)]
    return [primary] + fallbacks


class SearchClient:
    """
    Main client interface for the search service.

    Owns the host pool (shared by every request of this client) and the
    transport. Indexes created by init_index() share both.

    Example:
        >>> async with SearchClient("config.yaml") as client:
        ...     index = client.init_index("products")
        ...     content = await index.search("phone")
    """

    def __init__(
        self,
        config: Optional[Union[SearchOpsSettings, str, Path]] = None,
        transport: Optional[Transport] = None,
        metrics_callback: Optional[Callable[[AggregationMetrics], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the search client.

        Args:
            config: Either a SearchOpsSettings object or a path to a config YAML file.
                   If None, configuration comes from the environment and defaults.
            transport: Transport to use instead of an HttpxTransport
            metrics_callback: Receives the metrics of every disjunctive faceting search
            clock: Monotonic time source for host down delays and cache expiry

        Raises:
            ConfigurationError: If the configuration is invalid or names no host
        """
        # Load configuration
        try:
            if config is None:
                self.config = load_settings()
            elif isinstance(config, (str, Path)):
                if not Path(config).exists():
                    raise ConfigurationError(f"Configuration file not found: {config}")
                self.config = load_settings(str(config))
            elif isinstance(config, SearchOpsSettings):
                self.config = config
            else:
                raise ConfigurationError(
                    "Invalid configuration type. Expected SearchOpsSettings, str, Path, or None."
                )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        self._apply_log_level()
        self._clock = clock
        self.metrics_callback = metrics_callback if self.config.monitoring.enable_metrics else None

        connection = self.config.connection
        read_hosts, write_hosts = self._resolve_hosts(connection)
        self.host_pool = HostPool(
            read_hosts=read_hosts,
            write_hosts=write_hosts,
            down_delay=connection.host_down_delay,
            clock=clock,
        )
        self.transport = transport or HttpxTransport(scheme=connection.scheme, headers=connection.headers)
        self.executor = RequestExecutor(
            self.host_pool,
            self.transport,
            connect_timeout=connection.connect_timeout,
            read_timeout=connection.read_timeout,
            clock=clock,
        )
        self._indexes: Dict[str, SearchIndex] = {}

        logger.info(
            f"SearchClient initialized: {len(read_hosts)} read host(s), {len(write_hosts)} write host(s)"
        )

    def _apply_log_level(self) -> None:
        level = getattr(logging, self.config.monitoring.log_level)
        for name in PACKAGE_LOGGERS:
            logging.getLogger(name).setLevel(level)

    @staticmethod
    def _resolve_hosts(connection: ConnectionSettings) -> Tuple[List[str], List[str]]:
        read_hosts = list(connection.read_hosts)
        write_hosts = list(connection.write_hosts)
        if connection.application_id:
            read_hosts = read_hosts or default_hosts(connection, HostRole.READ)
            write_hosts = write_hosts or default_hosts(connection, HostRole.WRITE)
        if not read_hosts:
            raise ConfigurationError("No read hosts: set connection.read_hosts or connection.application_id")
        return read_hosts, write_hosts

    def init_index(self, index_name: str) -> SearchIndex:
        """
        Get the SearchIndex for an index name.

        The same instance (and so the same search cache) is returned for the
        same name.
        """
        if not index_name:
            raise ConfigurationError("Index name must not be empty")
        index = self._indexes.get(index_name)
        if index is None:
            index = SearchIndex(
                self.executor,
                index_name,
                search_timeout=self.config.connection.search_timeout,
                cache_enabled=self.config.cache.enabled,
                cache_ttl=self.config.cache.ttl,
                cache_max_size=self.config.cache.max_size,
                use_batch=self.config.aggregation.use_batch,
                default_deadline=self.config.aggregation.deadline,
                metrics_callback=self.metrics_callback,
                clock=self._clock,
            )
            self._indexes[index_name] = index
        return index

    async def multiple_queries(
        self,
        queries: Sequence[Tuple[str, SearchQuery]],
        strategy: Union[MultipleQueriesStrategy, str] = MultipleQueriesStrategy.NONE,
    ) -> Dict[str, Any]:
        """
        Run queries on several indexes in one request.

        Args:
            queries: (index name, query) pairs; results come back in the same order
            strategy: Multi-query strategy

        Returns:
            The service's answer, {"results": [...]}
        """
        if not queries:
            raise ConfigurationError("multiple_queries needs at least one query")
        request = build_multiple_queries_request(
            list(queries),
            MultipleQueriesStrategy(strategy),
            read_timeout=self.config.connection.search_timeout,
        )
        return await self._read_json(request)

    async def list_indexes(self) -> Dict[str, Any]:
        """
        List the indexes of the application.

        Returns:
            The service's answer, {"items": [...]}
        """
        return await self._read_json(RequestSpec("GET", "/1/indexes"))

    async def _read_json(self, request: RequestSpec) -> Dict[str, Any]:
        response = await self.executor.execute(request, HostRole.READ)
        content = response.raise_for_status().json()
        if not isinstance(content, dict):
            raise ResponseDecodeError(f"Expected a JSON object from '{response.host}'")
        return content

    def set_host_down_delay(self, seconds: float) -> None:
        """Change how long a failed host is skipped; applies to the next selection."""
        if seconds < 0:
            raise ConfigurationError("host down delay cannot be negative")
        self.host_pool.down_delay = seconds

    def set_connect_timeout(self, seconds: float) -> None:
        """Change the per-attempt connect timeout."""
        if seconds <= 0:
            raise ConfigurationError("connect timeout must be positive")
        self.executor.connect_timeout = seconds

    def set_read_timeout(self, seconds: float) -> None:
        """Change the per-attempt read timeout of non-search requests."""
        if seconds <= 0:
            raise ConfigurationError("read timeout must be positive")
        self.executor.read_timeout = seconds

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get a monitoring snapshot of hosts, execution counters and caches.
        """
        return {
            "hosts": self.host_pool.get_status(),
            "executor": self.executor.get_metrics(),
            "caches": {name: index.search_cache.get_metrics() for name, index in self._indexes.items()},
        }

    async def close(self) -> None:
        """Close the client and release all resources"""
        await self.executor.close()
        logger.info("SearchClient closed")

    async def __aenter__(self) -> "SearchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
