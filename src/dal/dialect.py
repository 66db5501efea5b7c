"""Backend dialect abstraction.

A dialect owns everything that differs between MySQL and PostgreSQL: DSN
construction, opening a connection, disconnect classification, identifier
quoting and the catalog queries used by the tools. The pool and the policy
engine only talk to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from common.config.settings import GatewaySettings


class ErrorClass(str, Enum):
    """Coarse classification of a driver error."""

    # The server dropped the session; safe to retry on a fresh connection.
    TRANSIENT = "transient"
    # The handle is unusable (closed, broken socket); not retried.
    FATAL = "fatal"
    # An ordinary query error; the connection itself is fine.
    OTHER = "other"


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of a statement that does not return rows."""

    rowcount: int
    last_insert_id: Optional[Any] = None
    status: str = "OK"


class QueryConnection(ABC):
    """Uniform async adapter over a driver connection.

    Statements use ``$1..$N`` placeholders regardless of backend.
    """

    provider: str = "unknown"

    @abstractmethod
    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """Run a row-returning statement and return rows as dicts."""

    @abstractmethod
    async def execute(self, sql: str, *params: Any) -> ExecuteResult:
        """Run a statement and return its affected-row count."""

    @abstractmethod
    async def close(self) -> None:
        """Close the underlying driver connection."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Return True once the driver connection is closed."""

    async def fetchrow(self, sql: str, *params: Any) -> Optional[Dict[str, Any]]:
        """Fetch the first row, or None."""
        rows = await self.fetch(sql, *params)
        return rows[0] if rows else None

    async def fetchval(self, sql: str, *params: Any) -> Any:
        """Fetch the first column of the first row, or None."""
        row = await self.fetchrow(sql, *params)
        if row is None:
            return None
        return next(iter(row.values()))

    async def ping(self) -> bool:
        """Run the liveness round trip; True when a row came back."""
        row = await self.fetchrow("SELECT 1 AS alive")
        return row is not None


class SchemaIntrospector(ABC):
    """Catalog queries used by the database tools."""

    system_databases: Tuple[str, ...] = ()

    @abstractmethod
    async def list_databases(self, conn: QueryConnection) -> List[str]:
        """Return every database visible to the connection."""

    @abstractmethod
    async def list_tables(
        self, conn: QueryConnection, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return tables with size details for a database or schema."""

    @abstractmethod
    async def get_columns(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return column definitions in ordinal order."""

    @abstractmethod
    async def get_index_rows(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return one row per indexed column."""

    @abstractmethod
    async def get_foreign_keys(
        self, conn: QueryConnection, table: str, database: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return foreign key column mappings."""

    @abstractmethod
    async def get_server_info(self, conn: QueryConnection) -> Dict[str, Any]:
        """Return backend version, uptime and activity counters."""


class Dialect(ABC):
    """Backend-specific behavior consumed by the pool and the tools."""

    name: str = "unknown"
    default_port: int = 0
    # Dangerous keywords added to the policy tables for this backend.
    extra_dangerous_keywords: Tuple[str, ...] = ()
    # Whether INSERT reports the new id through the driver rather than RETURNING.
    reports_last_insert_id: bool = True
    # Whether DELETE accepts a LIMIT clause.
    supports_delete_limit: bool = False

    @abstractmethod
    def build_dsn(self, settings: "GatewaySettings", *, redact: bool = False) -> str:
        """Build the connection DSN for the settings."""

    @abstractmethod
    async def connect(self, settings: "GatewaySettings") -> QueryConnection:
        """Open a new backend connection.

        Raises:
            DatabaseConnectionError: If the driver cannot open the connection.
        """

    @abstractmethod
    def classify_error(self, exc: BaseException) -> ErrorClass:
        """Classify a driver error for retry and liveness decisions."""

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote an identifier for this backend."""

    @property
    @abstractmethod
    def introspector(self) -> SchemaIntrospector:
        """Return the catalog query helper for this backend."""

    def is_disconnect(self, exc: BaseException) -> bool:
        """Return True when the error means the server dropped the session."""
        return self.classify_error(exc) is ErrorClass.TRANSIENT

    def qualified_name(self, table: str, database: Optional[str] = None) -> str:
        """Return ``database.table`` (or ``table``) with both parts quoted."""
        if database:
            return f"{self.quote_identifier(database)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)


def get_dialect(backend: str) -> Dialect:
    """Return the dialect for a canonical backend id.

    Raises:
        ValueError: If the backend is unknown.
    """
    normalized = (backend or "").strip().lower()
    if normalized == "mysql":
        from dal.mysql.dialect import MysqlDialect

        return MysqlDialect()
    if normalized == "postgres":
        from dal.postgres.dialect import PostgresDialect

        return PostgresDialect()
    raise ValueError(f"Unsupported backend '{backend}'. Allowed values: mysql, postgres")
