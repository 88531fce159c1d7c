import json

import httpx
import pytest

from host_management import (
    ConnectTimeoutError,
    ConnectionPoolTimeoutError,
    ConnectionDroppedError,
    HostResolutionError,
    ReadTimeoutError,
    TransportError,
)
from request_execution import HttpxTransport, RequestSpec


def _transport(handler, **kwargs) -> HttpxTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client=client, **kwargs)


def _raising(error_type, message: str = "boom"):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error_type(message, request=request)
    return handler


@pytest.mark.asyncio
async def test_sends_json_body_to_host_with_headers() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"nbHits": 1})

    transport = _transport(handler, headers={"X-Application-Id": "APP"})
    request = RequestSpec("POST", "/1/indexes/products/query", body={"params": "query=phone"})

    response = await transport.send("app-dsn.example.net", request, 1.0, 2.0)

    assert response.status_code == 200
    assert response.host == "app-dsn.example.net"
    assert response.json() == {"nbHits": 1}
    assert seen["url"] == "https://app-dsn.example.net/1/indexes/products/query"
    assert seen["body"] == {"params": "query=phone"}
    assert seen["headers"]["x-application-id"] == "APP"
    assert seen["headers"]["content-type"].startswith("application/json")


@pytest.mark.asyncio
async def test_error_status_is_a_response() -> None:
    transport = _transport(lambda request: httpx.Response(400, json={"message": "bad", "status": 400}))

    response = await transport.send("h.test", RequestSpec("GET", "/1/indexes"), 1.0, 1.0)

    assert response.status_code == 400
    assert not response.ok


@pytest.mark.asyncio
async def test_scheme_and_query_params() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, json={})

    transport = _transport(handler, scheme="http")
    await transport.send("localhost:8080", RequestSpec("GET", "/1/indexes", params={"page": "2"}), 1.0, 1.0)

    assert seen["url"].scheme == "http"
    assert seen["url"].params["page"] == "2"


@pytest.mark.parametrize(
    "error_type, message, expected",
    [
        (httpx.ConnectTimeout, "timed out", ConnectTimeoutError),
        (httpx.ReadTimeout, "timed out", ReadTimeoutError),
        (httpx.PoolTimeout, "pool", ConnectionPoolTimeoutError),
        (httpx.ConnectError, "[Errno -2] Name or service not known", HostResolutionError),
        (httpx.ConnectError, "[Errno 111] Connection refused", ConnectionDroppedError),
        (httpx.ReadError, "Connection reset by peer", ConnectionDroppedError),
        (httpx.RemoteProtocolError, "Server disconnected", ConnectionDroppedError),
    ],
)
@pytest.mark.asyncio
async def test_httpx_failures_map_to_transport_errors(error_type, message, expected) -> None:
    transport = _transport(_raising(error_type, message))

    with pytest.raises(expected) as excinfo:
        await transport.send("h.test", RequestSpec("GET", "/1/indexes"), 1.0, 1.0)

    assert excinfo.value.host == "h.test"
    assert isinstance(excinfo.value.__cause__, error_type)


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    transport = HttpxTransport(client=client)

    await transport.close()

    assert not client.is_closed
    await client.aclose()


def test_pool_starvation_is_not_a_host_failure() -> None:
    assert not issubclass(ConnectionPoolTimeoutError, TransportError)
