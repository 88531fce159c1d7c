import logging

import pytest

from client import SearchClient, default_hosts
from config import ConnectionSettings, SearchOpsSettings
from host_management import HostRole
from request_execution import HttpxTransport
from search_operations import SearchQuery
from searchops_exceptions import ApplicationError, ConfigurationError


def test_hosts_derived_from_application_id(phone_service) -> None:
    client = SearchClient(SearchOpsSettings(connection={"application_id": "APPID"}), transport=phone_service)

    assert [h.name for h in client.host_pool.hosts(HostRole.READ)] == [
        "appid-dsn.algolia.net",
        "appid-1.algolianet.com",
        "appid-2.algolianet.com",
        "appid-3.algolianet.com",
    ]
    assert client.host_pool.hosts(HostRole.WRITE)[0].name == "appid.algolia.net"


def test_explicit_hosts_win_over_derived_ones(phone_service) -> None:
    settings = SearchOpsSettings(connection={"application_id": "APPID", "read_hosts": ["r.test"]})
    client = SearchClient(settings, transport=phone_service)

    assert [h.name for h in client.host_pool.hosts(HostRole.READ)] == ["r.test"]
    assert len(client.host_pool.hosts(HostRole.WRITE)) == 4


def test_default_hosts_use_configured_domains() -> None:
    connection = ConnectionSettings(application_id="app", dsn_domain="dsn.test", fallback_domain="fb.test")

    assert default_hosts(connection, HostRole.WRITE) == ["app.dsn.test", "app-1.fb.test", "app-2.fb.test", "app-3.fb.test"]


def test_no_host_and_no_application_id_is_a_configuration_error(phone_service) -> None:
    with pytest.raises(ConfigurationError):
        SearchClient(SearchOpsSettings(), transport=phone_service)


def test_invalid_configuration_type_rejected() -> None:
    with pytest.raises(ConfigurationError):
        SearchClient(config=42)


def test_missing_configuration_file_rejected(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        SearchClient(tmp_path / "absent.yaml")


def test_invalid_yaml_values_become_configuration_error(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("connection:\n  read_hosts: [a.test]\n  connect_timeout: -1\n")

    with pytest.raises(ConfigurationError):
        SearchClient(path)


def test_builds_httpx_transport_by_default() -> None:
    client = SearchClient(SearchOpsSettings(connection={"read_hosts": ["a.test"], "scheme": "http"}))

    assert isinstance(client.transport, HttpxTransport)
    assert client.transport.scheme == "http"


def test_log_level_applied_to_package_loggers(phone_service) -> None:
    SearchClient(
        SearchOpsSettings(connection={"read_hosts": ["a.test"]}, monitoring={"log_level": "warning"}),
        transport=phone_service,
    )

    assert logging.getLogger("request_execution").level == logging.WARNING
    assert logging.getLogger("search_operations").level == logging.WARNING


def test_init_index_returns_same_instance(make_client, phone_service) -> None:
    client = make_client(phone_service)

    assert client.init_index("products") is client.init_index("products")
    assert client.init_index("products") is not client.init_index("other")
    with pytest.raises(ConfigurationError):
        client.init_index("")


@pytest.mark.asyncio
async def test_list_indexes(make_client, phone_service) -> None:
    client = make_client(phone_service)

    content = await client.list_indexes()

    assert content["items"][0]["name"] == "products"
    assert phone_service.calls[0][1].method == "GET"


@pytest.mark.asyncio
async def test_multiple_queries_across_indexes(make_client, phone_service) -> None:
    client = make_client(phone_service)

    content = await client.multiple_queries([("products", SearchQuery(query="cover")), ("archive", SearchQuery())])

    assert [r["index"] for r in content["results"]] == ["products", "archive"]
    assert content["results"][0]["nbHits"] == 3


@pytest.mark.asyncio
async def test_multiple_queries_error_surfaces(make_client, phone_service) -> None:
    phone_service.error_for = lambda query: (400, "bad query")
    client = make_client(phone_service)

    with pytest.raises(ApplicationError):
        await client.multiple_queries([("products", SearchQuery())])


@pytest.mark.asyncio
async def test_runtime_setters(make_client, phone_service, clock) -> None:
    client = make_client(phone_service)
    client.set_connect_timeout(0.5)
    client.set_read_timeout(3.0)
    client.set_host_down_delay(10)
    phone_service.take_down("read-1.test")

    await client.list_indexes()
    assert phone_service.calls[0][2:] == (0.5, 3.0)

    phone_service.down_hosts.clear()
    clock.advance(10)
    phone_service.calls.clear()
    await client.list_indexes()
    assert phone_service.hosts_called == ["read-1.test"]

    with pytest.raises(ConfigurationError):
        client.set_connect_timeout(0)
    with pytest.raises(ConfigurationError):
        client.set_host_down_delay(-1)


@pytest.mark.asyncio
async def test_metrics_snapshot(make_client, phone_service) -> None:
    client = make_client(phone_service, cache={"enabled": True})
    await client.init_index("products").search("phone")

    metrics = client.get_metrics()

    assert metrics["executor"]["total_requests"] == 1
    assert metrics["caches"]["products"]["size"] == 1
    assert [h["name"] for h in metrics["hosts"]["read"]] == ["read-1.test", "read-2.test", "read-3.test"]


@pytest.mark.asyncio
async def test_async_context_manager_closes_transport(make_client, phone_service) -> None:
    async with make_client(phone_service) as client:
        await client.list_indexes()

    assert phone_service.closed
