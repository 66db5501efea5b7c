import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import aiomysql
import pymysql

from dal.dialect import Dialect, ErrorClass, QueryConnection, SchemaIntrospector
from dal.errors import DatabaseConnectionError
from dal.mysql.connection import MysqlConnection
from dal.mysql.quoting import quote_identifier
from dal.mysql.schema_introspector import MysqlSchemaIntrospector

if TYPE_CHECKING:
    from common.config.settings import GatewaySettings

logger = logging.getLogger(__name__)

# CR_SERVER_GONE_ERROR and CR_SERVER_LOST.
DISCONNECT_ERROR_CODES = frozenset({2006, 2013})

CONNECT_TIMEOUT_SECONDS = 10


class MysqlDialect(Dialect):
    """MySQL dialect backed by aiomysql."""

    name = "mysql"
    default_port = 3306
    reports_last_insert_id = True
    supports_delete_limit = True

    def __init__(self) -> None:
        self._introspector = MysqlSchemaIntrospector()

    @property
    def introspector(self) -> SchemaIntrospector:
        return self._introspector

    def build_dsn(self, settings: "GatewaySettings", *, redact: bool = False) -> str:
        """Build a mysql:// DSN; the password is masked when ``redact`` is set."""
        password = "***" if redact else quote(settings.password or "", safe="")
        credentials = quote(settings.user, safe="")
        if settings.password:
            credentials = f"{credentials}:{password}"
        dsn = f"mysql://{credentials}@{settings.host}:{settings.port}"
        if settings.database:
            dsn = f"{dsn}/{settings.database}"
        return f"{dsn}?charset=utf8mb4&connect_timeout={CONNECT_TIMEOUT_SECONDS}"

    async def connect(self, settings: "GatewaySettings") -> QueryConnection:
        """Open an autocommit aiomysql connection."""
        timeout_ms = max(int(settings.query_timeout_seconds), 0) * 1000
        kwargs = {
            "host": settings.host,
            "port": settings.port,
            "user": settings.user,
            "password": settings.password or "",
            "charset": "utf8mb4",
            "autocommit": True,
            "connect_timeout": CONNECT_TIMEOUT_SECONDS,
        }
        if settings.database:
            kwargs["db"] = settings.database
        if timeout_ms:
            kwargs["init_command"] = f"SET SESSION max_execution_time={timeout_ms}"
        try:
            conn = await aiomysql.connect(**kwargs)
        except (pymysql.MySQLError, OSError) as exc:
            logger.error(
                "MySQL connection failed",
                extra={"dsn": self.build_dsn(settings, redact=True), "error": str(exc)},
            )
            raise DatabaseConnectionError(
                f"Database connection failed: {exc}", provider=self.name
            ) from exc
        return MysqlConnection(conn)

    def classify_error(self, exc: BaseException) -> ErrorClass:
        """Classify pymysql errors by their client error code."""
        if isinstance(exc, pymysql.err.InterfaceError):
            return ErrorClass.FATAL
        if isinstance(exc, pymysql.MySQLError):
            code = exc.args[0] if exc.args else None
            if code in DISCONNECT_ERROR_CODES:
                return ErrorClass.TRANSIENT
            return ErrorClass.OTHER
        if isinstance(exc, (OSError, ConnectionError)):
            return ErrorClass.FATAL
        return ErrorClass.OTHER

    def quote_identifier(self, name: str) -> str:
        return quote_identifier(name)
