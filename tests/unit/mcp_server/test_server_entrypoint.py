"""Tests for the command-line entry point and server wiring."""

from unittest.mock import MagicMock, patch

import pytest

from common.errors import ConfigurationError
from mcp_server import main as server_main
from tests._support.fakes import FakeDialect, make_settings


@pytest.fixture(autouse=True)
def _no_dotenv():
    with patch.object(server_main, "load_dotenv"):
        yield


def _parse(*argv):
    return server_main.build_arg_parser().parse_args(list(argv))


def test_load_settings_applies_overrides(monkeypatch):
    monkeypatch.setenv("MYSQL_HOST", "env-host")
    monkeypatch.setenv("MYSQL_USER", "env-user")

    settings = server_main.load_settings(
        _parse("--host", "cli-host", "--port", "3307", "--allow-insert", "--log-level", "debug")
    )

    assert settings.backend == "mysql"
    assert settings.host == "cli-host"
    assert settings.port == 3307
    assert settings.user == "env-user"
    assert settings.allow_insert is True
    assert settings.allow_update is False
    assert settings.log_level == "DEBUG"


def test_load_settings_backend_alias(monkeypatch):
    monkeypatch.setenv("PGSQL_DB", "analytics")

    settings = server_main.load_settings(_parse("--backend", "postgresql"))

    assert settings.backend == "postgres"
    assert settings.port == 5432
    assert settings.database == "analytics"
    assert settings.tool_prefix == "postgresql"


def test_load_settings_rejects_unknown_backend():
    with pytest.raises(ConfigurationError):
        server_main.load_settings(_parse("--backend", "oracle"))


def test_main_returns_error_on_bad_configuration():
    with patch.object(server_main, "create_server") as create_server:
        assert server_main.main(["--backend", "oracle"]) == 1

    create_server.assert_not_called()


def test_main_maps_http_transport_to_sse(monkeypatch):
    monkeypatch.delenv("MCP_HOST", raising=False)
    monkeypatch.delenv("MCP_PORT", raising=False)
    mcp = MagicMock()

    with (
        patch.object(server_main, "configure_logging"),
        patch.object(server_main, "setup_telemetry"),
        patch.object(server_main, "create_server", return_value=mcp),
    ):
        assert server_main.main(["--transport", "http"]) == 0

    mcp.run.assert_called_once_with(transport="sse", host="0.0.0.0", port=8000, path="/messages")


def test_main_defaults_to_stdio(monkeypatch):
    monkeypatch.delenv("MCP_TRANSPORT", raising=False)
    mcp = MagicMock()

    with (
        patch.object(server_main, "configure_logging"),
        patch.object(server_main, "setup_telemetry"),
        patch.object(server_main, "create_server", return_value=mcp),
    ):
        assert server_main.main([]) == 0

    mcp.run.assert_called_once_with(transport="stdio")


def test_create_server_wires_pool_policy_and_tools():
    dialect = FakeDialect()
    settings = make_settings(allow_delete=True, max_results=50)

    with (
        patch.object(server_main, "get_dialect", return_value=dialect),
        patch.object(server_main, "register_all") as register_all,
    ):
        mcp = server_main.create_server(settings)

    mcp_arg, database_tools, query_tools, prefix = register_all.call_args.args
    assert mcp_arg is mcp
    assert mcp.name == "mysql-sql-gateway"
    assert prefix == "mysql"
    assert database_tools.provider == "fake"
    assert query_tools.provider == "fake"
    assert query_tools._policy.config.allow_delete is True
    assert query_tools._policy.config.max_results == 50
    assert dialect.opened == []
