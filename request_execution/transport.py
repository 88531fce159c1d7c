"""
HTTP Transport

This module sends one RequestSpec to one host and classifies what went wrong
when no response came back. Timeouts, DNS failures and dropped connections
are translated into the TransportError family so the executor can fail over;
every HTTP response, whatever its status, is returned as a Response.
"""

import logging
from typing import Dict, Optional, Protocol

import httpx

from host_management.host_exceptions import (
    TransportError,
    ConnectTimeoutError,
    ReadTimeoutError,
    HostResolutionError,
    ConnectionDroppedError,
    ConnectionPoolTimeoutError,
)
from .models import RequestSpec, Response

logger = logging.getLogger(__name__)

# Substrings of resolver errors, across platforms.
_RESOLUTION_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "name resolution",
    "no address associated",
)


class Transport(Protocol):
    """Interface of the objects the RequestExecutor sends requests through."""

    async def send(
        self,
        host: str,
        request: RequestSpec,
        connect_timeout: float,
        read_timeout: float,
    ) -> Response:
        ...

    async def close(self) -> None:
        ...


class HttpxTransport:
    """
    Transport backed by a shared httpx.AsyncClient.

    Connections are kept alive and reused across requests to the same host.
    Timeouts are set per attempt from the values handed in by the executor.
    """

    def __init__(
        self,
        scheme: str = "https",
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the transport.

        Args:
            scheme: URL scheme used for every host
            headers: Headers added to every request
            client: Pre-built AsyncClient (tests inject one with a MockTransport)
        """
        self.scheme = scheme
        self._headers = dict(headers or {})
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    async def send(
        self,
        host: str,
        request: RequestSpec,
        connect_timeout: float,
        read_timeout: float,
    ) -> Response:
        """
        Send a request to one host.

        Raises:
            ConnectTimeoutError: connection not established within connect_timeout
            ReadTimeoutError: no response within read_timeout
            HostResolutionError: host name could not be resolved
            ConnectionDroppedError: connection refused, reset or closed
            ConnectionPoolTimeoutError: no pooled connection became free in time;
                not a TransportError, so the host keeps its status
            TransportError: any other failure below the HTTP level
        """
        url = f"{self.scheme}://{host}{request.path}"
        headers = dict(self._headers)
        content = request.encoded_body()
        if content is not None:
            headers["Content-Type"] = "application/json; charset=utf-8"

        timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=read_timeout,
            pool=connect_timeout,
        )

        try:
            http_response = await self._client.request(
                request.method,
                url,
                params=request.params,
                content=content,
                headers=headers,
                timeout=timeout,
            )
        except httpx.ConnectTimeout as e:
            raise ConnectTimeoutError(f"Connect timeout ({connect_timeout}s) to '{host}'", host=host) from e
        except httpx.ReadTimeout as e:
            raise ReadTimeoutError(f"Read timeout ({read_timeout}s) from '{host}'", host=host) from e
        except httpx.PoolTimeout as e:
            raise ConnectionPoolTimeoutError(
                f"No pooled connection to '{host}' freed up within {connect_timeout}s", host=host
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout talking to '{host}': {e}", host=host) from e
        except httpx.ConnectError as e:
            if any(marker in str(e).lower() for marker in _RESOLUTION_MARKERS):
                raise HostResolutionError(f"Cannot resolve '{host}': {e}", host=host) from e
            raise ConnectionDroppedError(f"Cannot connect to '{host}': {e}", host=host) from e
        except (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError) as e:
            raise ConnectionDroppedError(f"Connection to '{host}' dropped: {e}", host=host) from e
        except httpx.TransportError as e:
            raise TransportError(f"Transport failure with '{host}': {e}", host=host) from e

        logger.debug(f"{request.method} {url} -> {http_response.status_code}")
        return Response(status_code=http_response.status_code, body=http_response.content, host=host)

    async def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
