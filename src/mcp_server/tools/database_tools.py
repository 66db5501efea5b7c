"""MCP tools for catalog inspection: databases, tables, columns, server status."""

import logging
import time
from typing import Any, Dict, List, Optional

from common.config.settings import GatewaySettings
from common.models.error_metadata import ErrorCategory
from dal.pool import ConnectionPool
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import error_response_from_exception, tool_error_response
from security.policy import SecurityPolicy

logger = logging.getLogger(__name__)


def group_index_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group per-column index rows into one entry per index, keeping column order."""
    indexes: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        name = row["index_name"]
        index = indexes.setdefault(
            name,
            {
                "name": name,
                "unique": bool(row.get("unique")),
                "type": row.get("index_type"),
                "columns": [],
            },
        )
        index["columns"].append(
            {
                "name": row["column_name"],
                "sequence": row.get("seq_in_index"),
                "collation": row.get("collation"),
            }
        )
    for index in indexes.values():
        index["columns"].sort(key=lambda column: column["sequence"] or 0)
    return list(indexes.values())


class DatabaseTools:
    """Read-only catalog tools bound to one pool."""

    def __init__(
        self, pool: ConnectionPool, policy: SecurityPolicy, settings: GatewaySettings
    ) -> None:
        self._pool = pool
        self._policy = policy
        self._settings = settings

    @property
    def provider(self) -> str:
        return self._pool.dialect.name

    def _elapsed_ms(self, start_time: float) -> float:
        return (time.monotonic() - start_time) * 1000

    def _error_response(self, exc: Exception, start_time: float) -> str:
        return error_response_from_exception(
            self._pool.translate_error(exc),
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
        )

    async def list_databases(self) -> str:
        """List databases visible to the configured user.

        System databases are reported separately from user databases.

        Returns:
            JSON envelope with ``databases``, ``system_databases`` and ``total_count``.
        """
        start_time = time.monotonic()
        introspector = self._pool.dialect.introspector
        try:

            async def _fetch():
                async with self._pool.connection() as conn:
                    return await introspector.list_databases(conn)

            names = await self._pool.execute_with_retry(_fetch)
        except Exception as exc:
            return self._error_response(exc, start_time)

        system = set(introspector.system_databases)
        databases = [name for name in names if name not in system]
        return tool_success_response(
            {
                "databases": databases,
                "system_databases": [name for name in names if name in system],
                "total_count": len(databases),
            },
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            returned_count=len(databases),
        )

    async def list_tables(self, database: Optional[str] = None) -> str:
        """List tables with engine, row count and size details.

        Args:
            database: Database (MySQL) or schema (PostgreSQL); defaults to the
                connection's current database or the ``public`` schema.
        """
        start_time = time.monotonic()
        database = database or None
        try:
            self._policy.check_schema_name(database)

            async def _fetch():
                async with self._pool.connection() as conn:
                    return await self._pool.dialect.introspector.list_tables(conn, database)

            tables = await self._pool.execute_with_retry(_fetch)
        except Exception as exc:
            return self._error_response(exc, start_time)

        return tool_success_response(
            {
                "database": database or self._settings.database,
                "tables": tables,
                "total_count": len(tables),
            },
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            returned_count=len(tables),
        )

    async def describe_table(self, table: str, database: Optional[str] = None) -> str:
        """Describe a table's columns, indexes and foreign keys.

        Args:
            table: Table name.
            database: Database (MySQL) or schema (PostgreSQL).
        """
        start_time = time.monotonic()
        table = (table or "").strip()
        if not table:
            return tool_error_response(
                message="Parameter 'table' must be non-empty for describe_table.",
                code="EMPTY_PARAMETER",
                category=ErrorCategory.INVALID_REQUEST,
                provider=self.provider,
            )

        database = database or None
        introspector = self._pool.dialect.introspector
        try:
            self._policy.check_schema_name(database)

            async def _fetch():
                async with self._pool.connection() as conn:
                    columns = await introspector.get_columns(conn, table, database)
                    if not columns:
                        return None
                    index_rows = await introspector.get_index_rows(conn, table, database)
                    foreign_keys = await introspector.get_foreign_keys(conn, table, database)
                    return columns, index_rows, foreign_keys

            described = await self._pool.execute_with_retry(_fetch)
        except Exception as exc:
            return self._error_response(exc, start_time)

        if described is None:
            return tool_error_response(
                message=f"Table '{table}' not found.",
                code="TABLE_NOT_FOUND",
                category=ErrorCategory.INVALID_REQUEST,
                provider=self.provider,
                details={"table": table, "database": database},
                execution_time_ms=self._elapsed_ms(start_time),
            )

        columns, index_rows, foreign_keys = described
        return tool_success_response(
            {
                "table": table,
                "database": database or self._settings.database,
                "columns": columns,
                "indexes": group_index_rows(index_rows),
                "foreign_keys": foreign_keys,
            },
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            returned_count=len(columns),
        )

    async def server_status(self) -> str:
        """Report backend version and uptime, pool counters and a connection test."""
        start_time = time.monotonic()
        try:
            info = await self._pool.server_info()
        except Exception as exc:
            return self._error_response(exc, start_time)

        info["connection_test"] = await self._pool.test_connection()
        info["backend"] = self.provider
        info["host"] = self._settings.host
        info["port"] = self._settings.port
        info["database"] = self._settings.database or "multi-db"
        return tool_success_response(
            info,
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
        )

    async def connection_status(self) -> str:
        """Resource payload: connection settings, pool counters and a connection test."""
        status = {
            "connected": await self._pool.test_connection(),
            "settings": self._settings.public_dict(),
            "pool": self._pool.stats().to_dict(),
        }
        return tool_success_response(status, provider=self.provider)

    def capabilities(self) -> str:
        """Resource payload: supported operations and active security features."""
        config = self._policy.config
        operations = ["SELECT", "SHOW", "DESCRIBE", "EXPLAIN"]
        for name, allowed in (
            ("INSERT", config.allow_insert),
            ("UPDATE", config.allow_update),
            ("DELETE", config.allow_delete),
            ("TRUNCATE", config.allow_truncate),
        ):
            if allowed or config.allow_all_operations:
                operations.append(name)
        if config.allow_ddl or config.allow_all_operations:
            operations.extend(["CREATE", "ALTER", "DROP"])

        return tool_success_response(
            {
                "backend": self.provider,
                "supported_operations": operations,
                "security_features": {
                    "dangerous_keyword_blocking": config.block_dangerous_keywords,
                    "injection_detection": True,
                    "schema_allow_list": sorted(config.allowed_schemas),
                    "max_results": config.max_results,
                    "super_admin_mode": config.allow_all_operations,
                    "prepared_statements": self._settings.enable_prepared_statements,
                },
                "pool_size": self._pool.max_size,
                "query_timeout_seconds": self._settings.query_timeout_seconds,
            },
            provider=self.provider,
        )
