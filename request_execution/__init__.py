"""
Request Execution Module

This module sends requests to the search service with host failover:

- RequestSpec / Response data carriers
- Transport interface and its httpx implementation
- RequestExecutor, the ordered per-role retry loop over a HostPool

Transport failures (timeouts, DNS, dropped connections) switch hosts
silently; error responses are returned to the caller untouched.
"""

from .models import RequestSpec, Response
from .transport import Transport, HttpxTransport
from .executor import RequestExecutor, DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT

__all__ = [
    'RequestSpec',
    'Response',
    'Transport',
    'HttpxTransport',
    'RequestExecutor',
    'DEFAULT_CONNECT_TIMEOUT',
    'DEFAULT_READ_TIMEOUT',
]
