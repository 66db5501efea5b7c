"""MCP tools that run policy-checked SQL: select, insert, update, delete, execute."""

import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple

from common.models.error_metadata import ErrorCategory
from common.sanitization.text import preview
from dal.dialect import ExecuteResult
from dal.pool import ConnectionPool
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import error_response_from_exception, tool_error_response
from security.classification import (
    MUTATING_OPERATIONS,
    ROW_RETURNING_OPERATIONS,
    OperationKind,
    classify_operation,
)
from security.errors import StatementNotRowReturning, UnsafeMutation
from security.policy import SecurityPolicy

logger = logging.getLogger(__name__)

_LIMIT_CLAUSE = re.compile(r"\bLIMIT\b", re.IGNORECASE)


def apply_limit(query: str, limit: Optional[int]) -> str:
    """Append ``LIMIT n`` unless the query already has a LIMIT clause."""
    if not limit or _LIMIT_CLAUSE.search(query):
        return query
    return f"{query.strip().rstrip(';').rstrip()} LIMIT {int(limit)}"


def build_where_clause(
    conditions: Dict[str, Any], quote, start: int = 1
) -> Tuple[str, List[Any]]:
    """Build an AND-joined WHERE body with ``$n`` placeholders.

    ``None`` values compare with ``IS NULL`` and take no placeholder.
    """
    clauses = []
    params: List[Any] = []
    for column, value in conditions.items():
        if value is None:
            clauses.append(f"{quote(column)} IS NULL")
            continue
        params.append(value)
        clauses.append(f"{quote(column)} = ${start + len(params) - 1}")
    return " AND ".join(clauses), params


def _rows_payload(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "rows": rows,
        "row_count": len(rows),
        "columns": list(rows[0].keys()) if rows else [],
    }


class QueryTools:
    """Query execution tools; every statement passes the security policy first."""

    def __init__(self, pool: ConnectionPool, policy: SecurityPolicy) -> None:
        self._pool = pool
        self._policy = policy

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

    def _table_name(self, table: str, database: Optional[str]) -> str:
        return self._pool.dialect.qualified_name(table, database or None)

    def _invalid(self, message: str, code: str = "INVALID_PARAMETER") -> str:
        return tool_error_response(
            message=message,
            code=code,
            category=ErrorCategory.INVALID_REQUEST,
            provider=self.provider,
        )

    async def _fetch_rows(self, query: str, params: List[Any]) -> List[Dict[str, Any]]:
        async def _run():
            async with self._pool.connection() as conn:
                return await conn.fetch(query, *params)

        return await self._pool.execute_with_retry(_run)

    async def _execute(self, query: str, params: List[Any]) -> ExecuteResult:
        async with self._pool.connection() as conn:
            return await conn.execute(query, *params)

    async def select(
        self, query: str, params: Optional[List[Any]] = None, limit: Optional[int] = None
    ) -> str:
        """Run a row-returning query (SELECT, SHOW, DESCRIBE, EXPLAIN).

        Statements that modify data are rejected even when their operation is
        permitted; they go through :meth:`execute_query` or the write tools.

        Args:
            query: SELECT statement using ``$1..$N`` placeholders.
            params: Positional parameter values.
            limit: Row limit appended to a SELECT without a LIMIT clause.

        Returns:
            JSON envelope with ``rows``, ``row_count`` and ``columns``.
        """
        start_time = time.monotonic()
        if limit is not None and limit < 1:
            return self._invalid("Parameter 'limit' must be a positive integer.")

        operation = classify_operation(query)
        try:
            self._policy.validate_query(query, operation)
            if operation not in ROW_RETURNING_OPERATIONS:
                raise StatementNotRowReturning(operation.value)
            applied_limit = limit if operation is OperationKind.SELECT else None
            final_query = apply_limit(query, applied_limit)
            rows = await self._fetch_rows(final_query, list(params or []))
            self._policy.check_result_limit(len(rows))
        except Exception as exc:
            return self._error_response(exc, start_time)

        return tool_success_response(
            _rows_payload(rows),
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            operation=operation.value,
            returned_count=len(rows),
            limit_applied=applied_limit,
            max_results=self._policy.config.max_results,
        )

    async def insert(
        self, table: str, data: Dict[str, Any], database: Optional[str] = None
    ) -> str:
        """Insert one row.

        Args:
            table: Target table.
            data: Column to value mapping; must not be empty.
            database: Database (MySQL) or schema (PostgreSQL).
        """
        start_time = time.monotonic()
        if not data:
            return self._invalid("Insert data must not be empty.", code="EMPTY_DATA")

        try:
            dialect = self._pool.dialect
            columns = ", ".join(dialect.quote_identifier(column) for column in data)
            placeholders = ", ".join(f"${i}" for i in range(1, len(data) + 1))
            target = self._table_name(table, database)
            query = f"INSERT INTO {target} ({columns}) VALUES ({placeholders})"
            if not dialect.reports_last_insert_id:
                query = f"{query} RETURNING *"
            self._policy.validate_query(query, OperationKind.INSERT)
            self._policy.check_schema_name(database)

            params = list(data.values())
            if dialect.reports_last_insert_id:
                outcome = await self._execute(query, params)
                result = {
                    "affected_rows": outcome.rowcount,
                    "insert_id": outcome.last_insert_id,
                }
            else:
                async with self._pool.connection() as conn:
                    rows = await conn.fetch(query, *params)
                result = {
                    "affected_rows": len(rows),
                    "insert_id": None,
                    "row": rows[0] if rows else None,
                }
        except Exception as exc:
            return self._error_response(exc, start_time)

        logger.info(
            "Row inserted",
            extra={"table": table, "affected_rows": result["affected_rows"]},
        )
        return tool_success_response(
            result,
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            operation=OperationKind.INSERT.value,
            affected_rows=result["affected_rows"],
        )

    async def update(
        self,
        table: str,
        data: Dict[str, Any],
        conditions: Dict[str, Any],
        database: Optional[str] = None,
    ) -> str:
        """Update rows matching every condition.

        Args:
            table: Target table.
            data: Column to new value mapping; must not be empty.
            conditions: Column to value equality filters; must not be empty.
            database: Database (MySQL) or schema (PostgreSQL).
        """
        start_time = time.monotonic()
        if not data:
            return self._invalid("Update data must not be empty.", code="EMPTY_DATA")

        try:
            if not conditions:
                raise UnsafeMutation(OperationKind.UPDATE.value)
            quote = self._pool.dialect.quote_identifier
            assignments = ", ".join(
                f"{quote(column)} = ${i}" for i, column in enumerate(data, start=1)
            )
            where, where_params = build_where_clause(conditions, quote, start=len(data) + 1)
            query = f"UPDATE {self._table_name(table, database)} SET {assignments} WHERE {where}"
            self._policy.validate_query(query, OperationKind.UPDATE)
            self._policy.check_schema_name(database)
            outcome = await self._execute(query, list(data.values()) + where_params)
        except Exception as exc:
            return self._error_response(exc, start_time)

        return tool_success_response(
            {"affected_rows": outcome.rowcount},
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            operation=OperationKind.UPDATE.value,
            affected_rows=outcome.rowcount,
        )

    async def delete(
        self,
        table: str,
        conditions: Dict[str, Any],
        database: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> str:
        """Delete rows matching every condition.

        Args:
            table: Target table.
            conditions: Column to value equality filters; must not be empty.
            database: Database (MySQL) or schema (PostgreSQL).
            limit: Maximum rows to delete (MySQL only).
        """
        start_time = time.monotonic()
        if limit is not None and limit < 1:
            return self._invalid("Parameter 'limit' must be a positive integer.")
        if limit is not None and not self._pool.dialect.supports_delete_limit:
            return self._invalid(
                f"DELETE ... LIMIT is not supported by {self.provider}.",
                code="UNSUPPORTED_PARAMETER",
            )

        try:
            if not conditions:
                raise UnsafeMutation(OperationKind.DELETE.value)
            where, params = build_where_clause(conditions, self._pool.dialect.quote_identifier)
            query = f"DELETE FROM {self._table_name(table, database)} WHERE {where}"
            if limit is not None:
                query = f"{query} LIMIT {int(limit)}"
            self._policy.validate_query(query, OperationKind.DELETE)
            self._policy.check_schema_name(database)
            outcome = await self._execute(query, params)
        except Exception as exc:
            return self._error_response(exc, start_time)

        return tool_success_response(
            {"affected_rows": outcome.rowcount},
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            operation=OperationKind.DELETE.value,
            affected_rows=outcome.rowcount,
            limit_applied=limit,
        )

    async def execute_query(self, query: str, params: Optional[List[Any]] = None) -> str:
        """Run an arbitrary statement, gated by its detected operation.

        Row-returning statements (SELECT, SHOW, DESCRIBE, EXPLAIN) return rows
        under the result cap; everything else returns the affected-row count.
        """
        start_time = time.monotonic()
        operation = classify_operation(query)
        bound = list(params or [])
        try:
            self._policy.validate_query(query, operation)
            logger.info(
                "Executing query",
                extra={
                    "operation": operation.value,
                    "query_preview": preview(self._policy.sanitize_for_log(query), 100),
                },
            )
            if operation in ROW_RETURNING_OPERATIONS:
                rows = await self._fetch_rows(query, bound)
                self._policy.check_result_limit(len(rows))
            else:
                outcome = await self._execute(query, bound)
        except Exception as exc:
            return self._error_response(exc, start_time)

        if operation in ROW_RETURNING_OPERATIONS:
            return tool_success_response(
                _rows_payload(rows),
                provider=self.provider,
                execution_time_ms=self._elapsed_ms(start_time),
                operation=operation.value,
                returned_count=len(rows),
                max_results=self._policy.config.max_results,
            )

        result: Dict[str, Any] = {"affected_rows": outcome.rowcount, "status": outcome.status}
        if operation is OperationKind.INSERT and outcome.last_insert_id is not None:
            result["insert_id"] = outcome.last_insert_id
        return tool_success_response(
            result,
            provider=self.provider,
            execution_time_ms=self._elapsed_ms(start_time),
            operation=operation.value,
            affected_rows=outcome.rowcount if operation in MUTATING_OPERATIONS else None,
        )
