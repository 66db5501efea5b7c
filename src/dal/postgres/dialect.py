import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import asyncpg

from dal.dialect import Dialect, ErrorClass, QueryConnection, SchemaIntrospector
from dal.errors import DatabaseConnectionError
from dal.postgres.connection import PostgresConnection
from dal.postgres.quoting import quote_identifier
from dal.postgres.schema_introspector import PostgresSchemaIntrospector

if TYPE_CHECKING:
    from common.config.settings import GatewaySettings

logger = logging.getLogger(__name__)

# admin_shutdown, crash_shutdown, cannot_connect_now, connection_failure,
# sqlclient_unable_to_establish_sqlconnection.
DISCONNECT_SQLSTATES = frozenset({"57P01", "57P02", "57P03", "08006", "08001"})

CONNECT_TIMEOUT_SECONDS = 10


class PostgresDialect(Dialect):
    """PostgreSQL dialect backed by asyncpg."""

    name = "postgres"
    default_port = 5432
    extra_dangerous_keywords = ("COPY", "VACUUM")
    reports_last_insert_id = False
    supports_delete_limit = False

    def __init__(self) -> None:
        self._introspector = PostgresSchemaIntrospector()

    @property
    def introspector(self) -> SchemaIntrospector:
        return self._introspector

    def build_dsn(self, settings: "GatewaySettings", *, redact: bool = False) -> str:
        """Build a postgresql:// DSN; the password is masked when ``redact`` is set."""
        credentials = quote(settings.user, safe="")
        if settings.password:
            password = "***" if redact else quote(settings.password, safe="")
            credentials = f"{credentials}:{password}"
        database = settings.database or "postgres"
        return (
            f"postgresql://{credentials}@{settings.host}:{settings.port}/{database}"
            f"?client_encoding=UTF8&connect_timeout={CONNECT_TIMEOUT_SECONDS}"
        )

    async def connect(self, settings: "GatewaySettings") -> QueryConnection:
        """Open an asyncpg connection with the query timeout as command timeout."""
        command_timeout = settings.query_timeout_seconds or None
        try:
            conn = await asyncpg.connect(
                host=settings.host,
                port=settings.port,
                user=settings.user,
                password=settings.password or None,
                database=settings.database or "postgres",
                timeout=CONNECT_TIMEOUT_SECONDS,
                command_timeout=command_timeout,
                server_settings={"application_name": "sql_gateway_mcp"},
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.error(
                "PostgreSQL connection failed",
                extra={"dsn": self.build_dsn(settings, redact=True), "error": str(exc)},
            )
            raise DatabaseConnectionError(
                f"Database connection failed: {exc}", provider=self.name
            ) from exc
        return PostgresConnection(conn)

    def classify_error(self, exc: BaseException) -> ErrorClass:
        """Classify asyncpg errors by SQLSTATE."""
        sqlstate = getattr(exc, "sqlstate", None)
        if sqlstate in DISCONNECT_SQLSTATES:
            return ErrorClass.TRANSIENT
        if isinstance(exc, asyncpg.exceptions.ConnectionDoesNotExistError):
            return ErrorClass.FATAL
        if isinstance(exc, asyncpg.InterfaceError):
            return ErrorClass.FATAL
        if isinstance(exc, (OSError, ConnectionError)):
            return ErrorClass.FATAL
        return ErrorClass.OTHER

    def quote_identifier(self, name: str) -> str:
        return quote_identifier(name)
