from typing import Any, Dict, List

import asyncpg

from dal.dialect import ExecuteResult, QueryConnection
from dal.tracing import trace_query_operation


def parse_status_rowcount(status: str) -> int:
    """Extract the affected-row count from an asyncpg command status.

    ``"INSERT 0 3"`` yields 3, ``"UPDATE 2"`` yields 2; statuses without a
    trailing count (``"CREATE TABLE"``) yield 0.
    """
    parts = (status or "").split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


class PostgresConnection(QueryConnection):
    """Adapter over a single asyncpg connection."""

    provider = "postgres"

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    @property
    def raw(self) -> asyncpg.Connection:
        """Return the wrapped driver connection."""
        return self._conn

    @property
    def closed(self) -> bool:
        return self._conn.is_closed()

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        async def _run():
            rows = await self._conn.fetch(sql, *params)
            return [dict(row) for row in rows]

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
        )

    async def execute(self, sql: str, *params: Any) -> ExecuteResult:
        async def _run():
            status = await self._conn.execute(sql, *params)
            return ExecuteResult(rowcount=parse_status_rowcount(status), status=status)

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
        )

    async def close(self) -> None:
        if not self._conn.is_closed():
            await self._conn.close()
