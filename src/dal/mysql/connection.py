from typing import Any, Dict, List

import aiomysql

from dal.dialect import ExecuteResult, QueryConnection
from dal.mysql.param_translation import translate_postgres_params_to_mysql
from dal.tracing import statement_verb, trace_query_operation


class MysqlConnection(QueryConnection):
    """Adapter providing asyncpg-like helpers over aiomysql."""

    provider = "mysql"

    def __init__(self, conn: aiomysql.Connection) -> None:
        self._conn = conn

    @property
    def raw(self) -> aiomysql.Connection:
        """Return the wrapped driver connection."""
        return self._conn

    @property
    def closed(self) -> bool:
        return bool(self._conn.closed)

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        sql, bound_params = translate_postgres_params_to_mysql(sql, list(params))

        async def _run():
            async with self._conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(sql, bound_params or None)
                rows = await cursor.fetchall()
                return [dict(row) for row in rows or ()]

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
        )

    async def execute(self, sql: str, *params: Any) -> ExecuteResult:
        sql, bound_params = translate_postgres_params_to_mysql(sql, list(params))

        async def _run():
            async with self._conn.cursor() as cursor:
                await cursor.execute(sql, bound_params or None)
                return ExecuteResult(
                    rowcount=cursor.rowcount,
                    last_insert_id=cursor.lastrowid or None,
                    status=_format_execute_status(sql, cursor.rowcount),
                )

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
        )

    async def close(self) -> None:
        if not self._conn.closed:
            self._conn.close()


def _format_execute_status(sql: str, rowcount: int) -> str:
    op = statement_verb(sql)
    if op in {"INSERT", "UPDATE", "DELETE"} and rowcount >= 0:
        return f"{op} {rowcount}"
    return "OK"
