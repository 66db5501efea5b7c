"""Live round trips against a real backend.

Run with ``RUN_INTEGRATION_TESTS=1`` and the usual ``DB_BACKEND`` and
``MYSQL_*``/``PGSQL_*`` variables pointing at a disposable database.
"""

import json

import pytest

from common.config.settings import GatewaySettings
from dal.dialect import get_dialect
from dal.pool import ConnectionPool
from mcp_server.tools.database_tools import DatabaseTools
from mcp_server.tools.query_tools import QueryTools
from security.policy import SecurityConfig, SecurityPolicy

pytestmark = pytest.mark.integration


def _gateway():
    settings = GatewaySettings.from_env()
    dialect = get_dialect(settings.backend)
    pool = ConnectionPool(dialect, settings)
    policy = SecurityPolicy(
        SecurityConfig.from_settings(
            settings, extra_dangerous_keywords=dialect.extra_dangerous_keywords
        )
    )
    return settings, pool, policy


@pytest.mark.asyncio
async def test_connection_and_select():
    _, pool, policy = _gateway()
    try:
        assert await pool.test_connection() is True

        data = json.loads(await QueryTools(pool, policy).select("SELECT 42 AS answer"))

        assert data["result"]["rows"] == [{"answer": 42}]
        assert pool.stats().active == 0
    finally:
        await pool.close_all()


@pytest.mark.asyncio
async def test_server_status_and_catalog():
    settings, pool, policy = _gateway()
    tools = DatabaseTools(pool, policy, settings)
    try:
        status = json.loads(await tools.server_status())
        databases = json.loads(await tools.list_databases())

        assert status["result"]["connection_test"] is True
        assert status["result"]["version"]
        assert isinstance(databases["result"]["databases"], list)
    finally:
        await pool.close_all()


@pytest.mark.asyncio
async def test_policy_blocks_before_backend():
    _, pool, policy = _gateway()
    try:
        data = json.loads(await QueryTools(pool, policy).execute_query("DROP TABLE users"))

        assert data["error"]["code"] == "FORBIDDEN_KEYWORD"
        assert len(pool) == 0
    finally:
        await pool.close_all()
