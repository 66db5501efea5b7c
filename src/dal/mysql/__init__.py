"""MySQL dialect, connection adapter and catalog queries."""

from .connection import MysqlConnection
from .dialect import MysqlDialect
from .param_translation import translate_postgres_params_to_mysql
from .quoting import quote_identifier
from .schema_introspector import MysqlSchemaIntrospector

__all__ = [
    "MysqlConnection",
    "MysqlDialect",
    "MysqlSchemaIntrospector",
    "quote_identifier",
    "translate_postgres_params_to_mysql",
]
