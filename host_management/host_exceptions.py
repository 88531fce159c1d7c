"""
Host Management Exceptions

This module defines the transport-level exceptions raised while talking to
individual hosts, and the terminal error raised once every host has failed.

The split matters to callers:
- TransportError subclasses are retryable; the executor moves on to the next host
- HostsExhaustedError means the service is unreachable, as opposed to an
  ApplicationError which means the service answered and rejected the request
"""

from typing import List, Tuple

from searchops_exceptions import SearchOpsError, OperationTimeoutError


class TransportError(SearchOpsError):
    """
    Base exception for failures below the HTTP response level.

    Raised when no response could be obtained from a host. The host is marked
    as failed and the request is retried on the next candidate.
    """

    def __init__(self, message: str, host: str = ""):
        super().__init__(message)
        self.host = host


class ConnectTimeoutError(TransportError):
    """Raised when the TCP/TLS connection to a host did not complete in time."""
    pass


class ReadTimeoutError(TransportError):
    """Raised when a host accepted the connection but did not answer in time."""
    pass


class HostResolutionError(TransportError):
    """Raised when the host name could not be resolved."""
    pass


class ConnectionDroppedError(TransportError):
    """Raised when the connection was refused, reset or closed mid-exchange."""
    pass


class HostsExhaustedError(SearchOpsError):
    """
    Raised when every candidate host failed with a transport error.

    Carries the ordered (host, error) pairs of every attempt so callers can
    tell which hosts were tried and why each one failed.
    """

    def __init__(self, message: str, attempts: List[Tuple[str, TransportError]]):
        super().__init__(message)
        self.attempts = list(attempts)

    @property
    def hosts_tried(self) -> List[str]:
        return [host for host, _ in self.attempts]


class RequestTimeoutError(OperationTimeoutError):
    """Raised when a request exceeded its overall timeout budget across hosts."""

    def __init__(self, message: str, attempts: List[Tuple[str, TransportError]]):
        super().__init__(message)
        self.attempts = list(attempts)


class ConnectionPoolTimeoutError(OperationTimeoutError):
    """
    Raised when no pooled connection became free within the connect timeout.

    This is local starvation, not a host failure: the host is not marked down
    and no other host is tried.
    """

    def __init__(self, message: str, host: str = ""):
        super().__init__(message)
        self.host = host
