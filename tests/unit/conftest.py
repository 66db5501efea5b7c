"""Unit test environment helpers."""

import pytest

_GATEWAY_ENV_VARS = (
    "DB_BACKEND",
    "MYSQL_HOST",
    "MYSQL_PORT",
    "MYSQL_USER",
    "MYSQL_PASS",
    "MYSQL_DB",
    "PGSQL_HOST",
    "PGSQL_PORT",
    "PGSQL_USER",
    "PGSQL_PASS",
    "PGSQL_DB",
    "ALLOW_INSERT_OPERATION",
    "ALLOW_UPDATE_OPERATION",
    "ALLOW_DELETE_OPERATION",
    "ALLOW_TRUNCATE_OPERATION",
    "ALLOW_DDL_OPERATIONS",
    "ALLOW_ALL_OPERATIONS",
    "BLOCK_DANGEROUS_KEYWORDS",
    "ALLOWED_SCHEMAS",
    "MAX_RESULTS",
    "QUERY_TIMEOUT",
    "CONNECTION_POOL_SIZE",
    "CONNECTION_IDLE_TIMEOUT",
    "ENABLE_PREPARED_STATEMENTS",
    "LOG_LEVEL",
    "DAL_TRACE_QUERIES",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_TRACES_EXPORTER",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Clear gateway env vars so unit tests see documented defaults."""
    for name in _GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OTEL_DISABLE_EXPORTER", "true")
    yield
