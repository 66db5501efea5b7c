from typing import Any, Dict, List, Optional

from dal.dialect import QueryConnection, SchemaIntrospector

_STATUS_VARIABLES = ("Connections", "Queries", "Threads_connected", "Uptime")


class MysqlSchemaIntrospector(SchemaIntrospector):
    """MySQL catalog queries using SHOW and information_schema."""

    system_databases = ("information_schema", "performance_schema", "mysql", "sys")

    async def list_databases(self, conn: QueryConnection) -> List[str]:
        """List every database visible to the current user."""
        rows = await conn.fetch("SHOW DATABASES")
        return [next(iter(row.values())) for row in rows]

    async def list_tables(
        self, conn: QueryConnection, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List base tables of a database (current database when omitted)."""
        query = """
            SELECT
                table_name AS name,
                engine AS engine,
                table_collation AS collation,
                table_rows AS row_count,
                data_length AS data_size,
                index_length AS index_size
            FROM information_schema.tables
            WHERE table_schema = COALESCE($1, DATABASE())
            AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        rows = await conn.fetch(query, database)
        tables = []
        for row in rows:
            data_size = int(row.get("data_size") or 0)
            index_size = int(row.get("index_size") or 0)
            tables.append(
                {
                    "name": row["name"],
                    "engine": row.get("engine") or "Unknown",
                    "collation": row.get("collation") or "Unknown",
                    "row_count": int(row.get("row_count") or 0),
                    "data_size": data_size,
                    "index_size": index_size,
                    "total_size": data_size + index_size,
                }
            )
        return tables

    async def get_columns(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return column definitions in ordinal order."""
        query = """
            SELECT
                column_name AS name,
                column_type AS type,
                is_nullable AS is_nullable,
                column_key AS column_key,
                column_default AS column_default,
                extra AS extra
            FROM information_schema.columns
            WHERE table_schema = COALESCE($1, DATABASE())
            AND table_name = $2
            ORDER BY ordinal_position
        """
        rows = await conn.fetch(query, database, table)
        return [
            {
                "name": row["name"],
                "type": row["type"],
                "nullable": row.get("is_nullable") == "YES",
                "key": row.get("column_key") or None,
                "default": row.get("column_default"),
                "extra": row.get("extra") or None,
            }
            for row in rows
        ]

    async def get_index_rows(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return one row per indexed column."""
        query = """
            SELECT
                index_name AS index_name,
                non_unique AS non_unique,
                index_type AS index_type,
                column_name AS column_name,
                seq_in_index AS seq_in_index,
                collation AS collation
            FROM information_schema.statistics
            WHERE table_schema = COALESCE($1, DATABASE())
            AND table_name = $2
            ORDER BY index_name, seq_in_index
        """
        rows = await conn.fetch(query, database, table)
        return [
            {
                "index_name": row["index_name"],
                "unique": int(row.get("non_unique") or 0) == 0,
                "index_type": row.get("index_type"),
                "column_name": row["column_name"],
                "seq_in_index": int(row.get("seq_in_index") or 0),
                "collation": row.get("collation"),
            }
            for row in rows
        ]

    async def get_foreign_keys(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return foreign key column mappings."""
        query = """
            SELECT
                constraint_name AS constraint_name,
                column_name AS column_name,
                referenced_table_schema AS referenced_schema,
                referenced_table_name AS referenced_table,
                referenced_column_name AS referenced_column
            FROM information_schema.key_column_usage
            WHERE table_schema = COALESCE($1, DATABASE())
            AND table_name = $2
            AND referenced_table_name IS NOT NULL
        """
        return await conn.fetch(query, database, table)

    async def get_server_info(self, conn: QueryConnection) -> Dict[str, Any]:
        """Return server version, uptime and global status counters."""
        version = await conn.fetchval("SELECT VERSION() AS version")
        rows = await conn.fetch(
            "SHOW GLOBAL STATUS WHERE Variable_name IN ($1, $2, $3, $4)", *_STATUS_VARIABLES
        )
        status = {row["Variable_name"]: row["Value"] for row in rows}
        return {
            "version": version,
            "uptime_seconds": int(status.get("Uptime") or 0),
            "server_connections": int(status.get("Connections") or 0),
            "server_queries": int(status.get("Queries") or 0),
            "server_threads_connected": int(status.get("Threads_connected") or 0),
        }
