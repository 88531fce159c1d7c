"""
Request Executor

This module runs one request against the host pool: the candidate hosts of
the requested role are tried strictly in order, each at most once, and every
attempt updates the pool's view of that host.

Only transport failures move the request to the next host. A response with
an error status is a successful exchange with the host and is handed back
unchanged; it is up to the caller to decide what a 404 or a 400 means.
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from host_management import (
    HostPool,
    HostRole,
    TransportError,
    HostsExhaustedError,
    RequestTimeoutError,
)
from .models import RequestSpec, Response
from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 2.0
DEFAULT_READ_TIMEOUT = 30.0


class RequestExecutor:
    """
    Ordered failover across the hosts of a HostPool.

    Worst-case latency of one execute() call is bounded by the number of
    candidate hosts times the per-attempt timeout (connect + read). There is
    no backoff and no jitter between attempts: the next host is tried at once.

    Example:
        >>> executor = RequestExecutor(pool, HttpxTransport())
        >>> response = await executor.execute(
        ...     RequestSpec("POST", "/1/indexes/products/query", body={"params": "query=phone"}),
        ...     HostRole.READ,
        ... )
    """

    def __init__(
        self,
        host_pool: HostPool,
        transport: Transport,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the executor.

        Args:
            host_pool: Pool providing candidates and receiving attempt outcomes
            transport: Object sending a request to one host
            connect_timeout: Per-attempt connect timeout in seconds
            read_timeout: Per-attempt read timeout in seconds, unless the
                request carries its own
            clock: Monotonic time source used for timeout budgets
        """
        if connect_timeout <= 0 or read_timeout <= 0:
            raise ValueError("Timeouts must be positive")

        self.host_pool = host_pool
        self.transport = transport
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._clock = clock

        self._total_requests = 0
        self._total_attempts = 0
        self._total_failovers = 0
        self._total_exhausted = 0
        self._total_error_responses = 0

        logger.info(
            f"RequestExecutor initialized: connect_timeout={connect_timeout}s, "
            f"read_timeout={read_timeout}s"
        )

    async def execute(self, request: RequestSpec, role: HostRole) -> Response:
        """
        Send a request, failing over across the hosts of a role.

        Args:
            request: The request to send
            role: Which host list to use

        Returns:
            Response: the first response received, whatever its status

        Raises:
            HostsExhaustedError: every candidate failed with a transport error
            RequestTimeoutError: the request's timeout_budget ran out before a
                host answered
        """
        self._total_requests += 1
        role = HostRole(role)
        candidates = self.host_pool.candidates(role)
        if not candidates:
            self._total_exhausted += 1
            raise HostsExhaustedError(f"No {role.value} hosts configured", [])

        attempts: List[Tuple[str, TransportError]] = []
        started = self._clock()

        for host in candidates:
            connect_timeout, read_timeout = self._attempt_timeouts(request, started, attempts)

            self._total_attempts += 1
            logger.debug(
                f"Attempt {len(attempts) + 1}/{len(candidates)}: "
                f"{request.method} {request.path} on '{host.name}'"
            )
            try:
                response = await self.transport.send(host.name, request, connect_timeout, read_timeout)
            except TransportError as e:
                self.host_pool.record_failure(host)
                attempts.append((host.name, e))
                self._total_failovers += 1
                logger.warning(
                    f"Host '{host.name}' failed ({type(e).__name__}: {e}); "
                    f"{len(candidates) - len(attempts)} candidate(s) left"
                )
                continue

            self.host_pool.record_success(host)
            if not response.ok:
                self._total_error_responses += 1
            if attempts:
                logger.info(
                    f"{request.method} {request.path} served by '{host.name}' "
                    f"after {len(attempts)} failed host(s)"
                )
            return response

        self._total_exhausted += 1
        summary = ", ".join(f"{name}: {type(error).__name__}" for name, error in attempts)
        logger.error(f"All {role.value} hosts failed for {request.method} {request.path} ({summary})")
        raise HostsExhaustedError(
            f"All {len(attempts)} {role.value} host(s) failed: {summary}",
            attempts,
        )

    def _attempt_timeouts(
        self,
        request: RequestSpec,
        started: float,
        attempts: List[Tuple[str, TransportError]],
    ) -> Tuple[float, float]:
        """Per-attempt timeouts, capped by what is left of the request's budget."""
        connect_timeout = self.connect_timeout
        read_timeout = request.read_timeout or self.read_timeout

        if request.timeout_budget is None:
            return connect_timeout, read_timeout

        remaining = request.timeout_budget - (self._clock() - started)
        if remaining <= 0:
            self._total_exhausted += 1
            raise RequestTimeoutError(
                f"{request.method} {request.path} exceeded its "
                f"{request.timeout_budget}s budget after {len(attempts)} attempt(s)",
                attempts,
            )
        return min(connect_timeout, remaining), min(read_timeout, remaining)

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get execution counters for monitoring.

        Returns:
            Dict with request, attempt, failover and exhaustion counts
        """
        return {
            "total_requests": self._total_requests,
            "total_attempts": self._total_attempts,
            "total_failovers": self._total_failovers,
            "total_exhausted": self._total_exhausted,
            "total_error_responses": self._total_error_responses,
            "connect_timeout": self.connect_timeout,
            "read_timeout": self.read_timeout,
        }

    async def close(self) -> None:
        """Release the transport."""
        await self.transport.close()
