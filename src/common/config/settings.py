"""Typed gateway configuration loaded once at startup."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Optional

from common.config.env import get_env_bool, get_env_int, get_env_list, get_env_str, parse_bool
from common.errors import ConfigurationError

SUPPORTED_BACKENDS = frozenset({"mysql", "postgres"})

BACKEND_ALIASES: Dict[str, str] = {
    "mysql": "mysql",
    "mariadb": "mysql",
    "postgres": "postgres",
    "postgresql": "postgres",
    "pg": "postgres",
    "pgsql": "postgres",
}

# Environment prefix and connection defaults per backend.
_BACKEND_ENV: Dict[str, Dict[str, Any]] = {
    "mysql": {"prefix": "MYSQL", "port": 3306, "user": "root"},
    "postgres": {"prefix": "PGSQL", "port": 5432, "user": "postgres"},
}

DEFAULT_POOL_SIZE = 5
DEFAULT_IDLE_TIMEOUT_SECONDS = 3600
DEFAULT_QUERY_TIMEOUT_SECONDS = 30
DEFAULT_MAX_RESULTS = 1000


def normalize_backend(value: Optional[str]) -> str:
    """Map a user-facing backend name to its canonical id.

    Raises:
        ConfigurationError: If the name is not a supported backend.
    """
    cleaned = (value or "").strip().lower()
    backend = BACKEND_ALIASES.get(cleaned)
    if backend is None:
        allowed = ", ".join(sorted(BACKEND_ALIASES))
        raise ConfigurationError(
            f"Unsupported database backend '{value}'. Allowed values: {allowed}",
            details={"backend": value},
        )
    return backend


@dataclass(frozen=True)
class GatewaySettings:
    """Immutable configuration snapshot for the gateway process."""

    backend: str = "mysql"
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = field(default="", repr=False)
    database: Optional[str] = None

    pool_size: int = DEFAULT_POOL_SIZE
    idle_timeout_seconds: int = DEFAULT_IDLE_TIMEOUT_SECONDS
    query_timeout_seconds: int = DEFAULT_QUERY_TIMEOUT_SECONDS
    max_results: int = DEFAULT_MAX_RESULTS

    allow_insert: bool = False
    allow_update: bool = False
    allow_delete: bool = False
    allow_truncate: bool = False
    allow_ddl: bool = False
    allow_all_operations: bool = False
    block_dangerous_keywords: bool = True
    allowed_schemas: FrozenSet[str] = frozenset()
    enable_prepared_statements: bool = True

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate invariants that would otherwise surface at first use."""
        if self.backend not in SUPPORTED_BACKENDS:
            raise ConfigurationError(
                f"Unsupported database backend '{self.backend}'.",
                details={"backend": self.backend},
            )
        if self.pool_size < 1:
            raise ConfigurationError(
                f"CONNECTION_POOL_SIZE must be at least 1, got {self.pool_size}.",
                details={"pool_size": self.pool_size},
            )
        if self.max_results < 0:
            raise ConfigurationError(
                f"MAX_RESULTS must not be negative, got {self.max_results}.",
                details={"max_results": self.max_results},
            )
        if not self.host:
            raise ConfigurationError("Database host is required.")
        if not self.user:
            raise ConfigurationError("Database user is required.")

    @property
    def env_prefix(self) -> str:
        """Return the environment prefix of the configured backend."""
        return _BACKEND_ENV[self.backend]["prefix"]

    @property
    def tool_prefix(self) -> str:
        """Return the prefix used for MCP tool and resource names."""
        return "mysql" if self.backend == "mysql" else "postgresql"

    def with_overrides(self, **overrides: Any) -> "GatewaySettings":
        """Return a copy with non-None overrides applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        if not applied:
            return self
        return replace(self, **applied)

    def public_dict(self) -> Dict[str, Any]:
        """Return the settings without secrets, for logging and diagnostics."""
        return {
            "backend": self.backend,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database or "multi-db",
            "pool_size": self.pool_size,
            "query_timeout_seconds": self.query_timeout_seconds,
            "max_results": self.max_results,
            "allow_insert": self.allow_insert,
            "allow_update": self.allow_update,
            "allow_delete": self.allow_delete,
            "allow_truncate": self.allow_truncate,
            "allow_ddl": self.allow_ddl,
            "allow_all_operations": self.allow_all_operations,
            "block_dangerous_keywords": self.block_dangerous_keywords,
            "allowed_schemas": sorted(self.allowed_schemas),
        }

    @classmethod
    def from_env(cls, backend: Optional[str] = None) -> "GatewaySettings":
        """Load gateway settings from environment variables.

        Raises:
            ConfigurationError: On malformed integers or an unknown backend.
        """
        resolved = normalize_backend(backend or get_env_str("DB_BACKEND", "mysql"))
        defaults = _BACKEND_ENV[resolved]
        prefix = defaults["prefix"]

        try:
            port = get_env_int(f"{prefix}_PORT", defaults["port"])
            pool_size = get_env_int("CONNECTION_POOL_SIZE", DEFAULT_POOL_SIZE)
            idle_timeout = get_env_int("CONNECTION_IDLE_TIMEOUT", DEFAULT_IDLE_TIMEOUT_SECONDS)
            query_timeout = get_env_int("QUERY_TIMEOUT", DEFAULT_QUERY_TIMEOUT_SECONDS)
            max_results = get_env_int("MAX_RESULTS", DEFAULT_MAX_RESULTS)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        return cls(
            backend=resolved,
            host=get_env_str(f"{prefix}_HOST", "localhost"),
            port=port,
            user=get_env_str(f"{prefix}_USER", defaults["user"]),
            password=get_env_str(f"{prefix}_PASS", ""),
            database=get_env_str(f"{prefix}_DB") or None,
            pool_size=pool_size,
            idle_timeout_seconds=idle_timeout,
            query_timeout_seconds=query_timeout,
            max_results=max_results,
            allow_insert=get_env_bool("ALLOW_INSERT_OPERATION", False),
            allow_update=get_env_bool("ALLOW_UPDATE_OPERATION", False),
            allow_delete=get_env_bool("ALLOW_DELETE_OPERATION", False),
            allow_truncate=get_env_bool("ALLOW_TRUNCATE_OPERATION", False),
            allow_ddl=get_env_bool("ALLOW_DDL_OPERATIONS", False),
            allow_all_operations=get_env_bool("ALLOW_ALL_OPERATIONS", False),
            block_dangerous_keywords=get_env_bool("BLOCK_DANGEROUS_KEYWORDS", True),
            allowed_schemas=frozenset(get_env_list("ALLOWED_SCHEMAS", [])),
            enable_prepared_statements=get_env_bool("ENABLE_PREPARED_STATEMENTS", True),
            log_level=(get_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        )


def coerce_flag(value: Any) -> Optional[bool]:
    """Parse an optional command-line flag value, keeping None as unset."""
    if value is None:
        return None
    return parse_bool(value)
