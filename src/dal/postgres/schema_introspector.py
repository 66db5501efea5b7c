from typing import Any, Dict, List, Optional

from dal.dialect import QueryConnection, SchemaIntrospector

DEFAULT_SCHEMA = "public"


class PostgresSchemaIntrospector(SchemaIntrospector):
    """PostgreSQL catalog queries; the ``database`` argument names a schema."""

    system_databases = ("template0", "template1")

    async def list_databases(self, conn: QueryConnection) -> List[str]:
        """List databases that accept connections."""
        rows = await conn.fetch(
            """
            SELECT datname AS name
            FROM pg_database
            WHERE datallowconn
            ORDER BY datname
            """
        )
        return [row["name"] for row in rows]

    async def list_tables(
        self, conn: QueryConnection, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List ordinary tables of a schema with size statistics."""
        query = """
            SELECT
                c.relname AS name,
                c.reltuples::bigint AS row_count,
                pg_table_size(c.oid) AS data_size,
                pg_indexes_size(c.oid) AS index_size,
                pg_total_relation_size(c.oid) AS total_size
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = $1 AND c.relkind IN ('r', 'p')
            ORDER BY c.relname
        """
        rows = await conn.fetch(query, database or DEFAULT_SCHEMA)
        return [
            {
                "name": row["name"],
                "engine": "PostgreSQL",
                "collation": None,
                "row_count": max(int(row.get("row_count") or 0), 0),
                "data_size": int(row.get("data_size") or 0),
                "index_size": int(row.get("index_size") or 0),
                "total_size": int(row.get("total_size") or 0),
            }
            for row in rows
        ]

    async def get_columns(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = """
            SELECT
                column_name AS name,
                data_type AS type,
                is_nullable AS is_nullable,
                column_default AS column_default,
                character_maximum_length AS max_length
            FROM information_schema.columns
            WHERE table_schema = $1 AND table_name = $2
            ORDER BY ordinal_position
        """
        rows = await conn.fetch(query, database or DEFAULT_SCHEMA, table)
        return [
            {
                "name": row["name"],
                "type": row["type"],
                "nullable": row.get("is_nullable") == "YES",
                "key": None,
                "default": row.get("column_default"),
                "extra": None,
                "max_length": row.get("max_length"),
            }
            for row in rows
        ]

    async def get_index_rows(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = """
            SELECT
                i.relname AS index_name,
                ix.indisunique AS is_unique,
                am.amname AS index_type,
                a.attname AS column_name,
                k.ord AS seq_in_index
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
            WHERE n.nspname = $1 AND t.relname = $2
            ORDER BY i.relname, k.ord
        """
        rows = await conn.fetch(query, database or DEFAULT_SCHEMA, table)
        return [
            {
                "index_name": row["index_name"],
                "unique": bool(row.get("is_unique")),
                "index_type": row.get("index_type"),
                "column_name": row["column_name"],
                "seq_in_index": int(row.get("seq_in_index") or 0),
                "collation": None,
            }
            for row in rows
        ]

    async def get_foreign_keys(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = """
            SELECT
                tc.constraint_name AS constraint_name,
                kcu.column_name AS column_name,
                ccu.table_schema AS referenced_schema,
                ccu.table_name AS referenced_table,
                ccu.column_name AS referenced_column
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage ccu
                ON ccu.constraint_name = tc.constraint_name
            WHERE tc.constraint_type = 'FOREIGN KEY'
            AND tc.table_schema = $1
            AND tc.table_name = $2
        """
        return await conn.fetch(query, database or DEFAULT_SCHEMA, table)

    async def get_server_info(self, conn: QueryConnection) -> Dict[str, Any]:
        row = await conn.fetchrow(
            """
            SELECT
                version() AS version,
                EXTRACT(EPOCH FROM now() - pg_postmaster_start_time())::bigint
                    AS uptime_seconds,
                (SELECT count(*) FROM pg_stat_activity) AS server_connections
            """
        )
        row = row or {}
        return {
            "version": row.get("version"),
            "uptime_seconds": int(row.get("uptime_seconds") or 0),
            "server_connections": int(row.get("server_connections") or 0),
        }
