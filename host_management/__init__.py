"""
Host Management Module

This module keeps the liveness view of the hosts serving a search application:

- Ordered host lists per traffic role (read vs write)
- Per-host failure timestamps with a self-healing down delay
- Fail-open candidate selection when every host is marked down
- Transport-level exception types used by the request executor

The pool is an explicitly owned object: each client builds its own and hands
it to its request executor.
"""

from .host_pool import Host, HostPool, HostRole, DEFAULT_HOST_DOWN_DELAY
from .host_exceptions import (
    TransportError,
    ConnectTimeoutError,
    ReadTimeoutError,
    HostResolutionError,
    ConnectionDroppedError,
    HostsExhaustedError,
    RequestTimeoutError,
    ConnectionPoolTimeoutError,
)

__all__ = [
    'Host',
    'HostPool',
    'HostRole',
    'DEFAULT_HOST_DOWN_DELAY',
    'TransportError',
    'ConnectTimeoutError',
    'ReadTimeoutError',
    'HostResolutionError',
    'ConnectionDroppedError',
    'HostsExhaustedError',
    'RequestTimeoutError',
    'ConnectionPoolTimeoutError',
]
