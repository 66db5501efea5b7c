"""PostgreSQL dialect, connection adapter and catalog queries."""

from .connection import PostgresConnection, parse_status_rowcount
from .dialect import PostgresDialect
from .quoting import quote_identifier
from .schema_introspector import PostgresSchemaIntrospector

__all__ = [
    "PostgresConnection",
    "PostgresDialect",
    "PostgresSchemaIntrospector",
    "parse_status_rowcount",
    "quote_identifier",
]
